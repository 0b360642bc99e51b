"""Element-query bridge — selector + ElementOp → Playwright locator call.

Read operations return a value. Operations that act on the page return
QUERY_SET, meaning "the query set itself, not a value".

Setters and clicks apply to every match. Value reads use the first match and
give '' for elements that have no value, such as a div.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pagetap.core.models import ElementOp, ElementQuery

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)


class _QuerySet:
    def __repr__(self) -> str:
        return "QUERY_SET"


QUERY_SET: Any = _QuerySet()

_SET_VALUE_JS = """(elements, value) => {
    for (const el of elements) {
        el.value = value;
        el.dispatchEvent(new Event('input', { bubbles: true }));
        el.dispatchEvent(new Event('change', { bubbles: true }));
    }
}"""

# Value of the first match, '' for elements without one, null for no match.
_GET_VALUE_JS = """(elements) => {
    if (elements.length === 0) return null;
    const value = elements[0].value;
    return value === undefined || value === null ? '' : String(value);
}"""

# DOM click on every match: links are followed, handlers fire in order.
_CLICK_JS = """(elements) => {
    for (const el of elements) el.click();
    return elements.length;
}"""


async def run_query(page: Page, query: ElementQuery) -> Any:
    """Run one element operation against every element matching the selector."""
    locator = page.locator(query.selector)
    match query.op:
        case ElementOp.TEXT:
            return "".join(await locator.all_text_contents())
        case ElementOp.VAL:
            if query.args:
                return await _set_value(locator, query.args[0])
            return await locator.evaluate_all(_GET_VALUE_JS)
        case ElementOp.CLICK:
            return await _click(locator, query.selector)


async def _set_value(locator: Locator, value: Any) -> Any:
    await locator.evaluate_all(_SET_VALUE_JS, str(value))
    return QUERY_SET


async def _click(locator: Locator, selector: str) -> Any:
    if await locator.evaluate_all(_CLICK_JS) == 0:
        logger.warning("click: no element matches %s", selector)
    return QUERY_SET
