"""Search GitHub for a repository and follow the first result.

    pagetap run examples/github_test.py --base-url https://github.com
"""


def main(t):
    t.navigate("/")
    t.assert_matches(t.text("title"), r"GitHub", "Homepage loaded")

    t.navigate("/search")

    t.diag("Searching for phantom-testlib")
    t.val("[name=q]", "phantom-testlib")
    t.val("[name=type]", "repositories")
    t.click_and_wait("button[type=submit]")

    t.assert_matches(t.text("h2"), r"1 result", "Exactly one match in search results")

    t.click_and_wait(".search-title a >> nth=0")
    t.assert_equals(t.text("[itemprop=author]"), "shoptime", "Repo is owned by Shoptime")

    t.finish()
