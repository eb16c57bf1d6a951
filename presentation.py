"""
presentation.py — page-side size chart modal.

A minimal element tree stands in for the page: the controller only needs ids,
classes, attributes, parent links and a hidden flag. One modal per document,
built lazily the first time a controller attaches to it.

Modal layout:
  div#size-chart-modal.size-chart-modal          ← backdrop
    div.size-chart-modal-content
      span.size-chart-close
      img.size-chart-image

State machine:
  Closed  --open(id)-->           Loading
  Loading --Found-->              Open
  Loading --NotFound/Invalid/…--> Closed   (notice shown)
  Loading --open(id)-->           Loading  (older lookup superseded)
  Open    --close-->              Closed
Only the newest lookup may touch the state: every open() and every close()
during Loading bumps a sequence number, results carrying an older one are
dropped.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional

import config
import markup
from size_chart import (
    TIMEOUT, UNAVAILABLE,
    Found, LookupResult, NotFound, TransientFailure, parse_product_id,
)

logger = logging.getLogger(__name__)

ESCAPE_KEY = "Escape"


# ── Element tree ──────────────────────────────────────────────────────────────

class Element:

    def __init__(
        self,
        tag: str,
        element_id: Optional[str] = None,
        classes: tuple[str, ...] = (),
        attrs: Optional[dict[str, str]] = None,
    ) -> None:
        self.tag      = tag
        self.id       = element_id
        self.classes  = set(classes)
        self.attrs    = dict(attrs or {})
        self.hidden   = False
        self.parent: Optional[Element] = None
        self.children: list[Element] = []

    def append(self, child: "Element") -> "Element":
        child.parent = self
        self.children.append(child)
        return child

    def iter(self) -> Iterator["Element"]:
        """This element and all its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.iter()

    def find_class(self, name: str) -> Optional["Element"]:
        return next((el for el in self.iter() if name in el.classes), None)

    def closest_class(self, name: str) -> Optional["Element"]:
        """Nearest element with class `name`, starting at self and walking up."""
        el: Optional[Element] = self
        while el is not None:
            if name in el.classes:
                return el
            el = el.parent
        return None

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"<{self.tag}{ident} {' '.join(sorted(self.classes))}>"


class Document:

    def __init__(self) -> None:
        self.body = Element("body")

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return next((el for el in self.body.iter() if el.id == element_id), None)

    def count_id(self, element_id: str) -> int:
        return sum(1 for el in self.body.iter() if el.id == element_id)


# ── Modal ─────────────────────────────────────────────────────────────────────

@dataclass
class Modal:
    backdrop: Element
    content: Element
    close_button: Element
    image: Element


_MODAL_PARTS = (markup.CONTENT_CLASS, markup.CLOSE_CLASS, markup.IMAGE_CLASS)


def _build_modal_children(backdrop: Element) -> None:
    for child in backdrop.children:
        child.parent = None
    backdrop.children = []
    backdrop.classes.add(markup.MODAL_CLASS)
    content = backdrop.append(Element("div", classes=(markup.CONTENT_CLASS,)))
    content.append(Element("span", classes=(markup.CLOSE_CLASS,)))
    content.append(
        Element("img", classes=(markup.IMAGE_CLASS,), attrs={"src": "", "alt": "Size Chart"})
    )
    backdrop.hidden = True


def ensure_modal(document: Document) -> Modal:
    """
    Return the document's modal, building it only if it isn't there yet. An
    element that already carries the modal id but lacks any of the modal's
    parts gets its children rebuilt.
    """
    backdrop = document.get_element_by_id(markup.MODAL_ID)
    if backdrop is None:
        backdrop = document.body.append(Element("div", markup.MODAL_ID))
        _build_modal_children(backdrop)
        logger.debug("Size chart modal created")
    elif any(backdrop.find_class(name) is None for name in _MODAL_PARTS):
        _build_modal_children(backdrop)
        logger.warning("Size chart modal was incomplete, rebuilt its contents")

    return Modal(
        backdrop=backdrop,
        content=backdrop.find_class(markup.CONTENT_CLASS),
        close_button=backdrop.find_class(markup.CLOSE_CLASS),
        image=backdrop.find_class(markup.IMAGE_CLASS),
    )


@dataclass
class ModalState:
    visible: bool = False
    image_url: Optional[str] = None


class ViewState(enum.Enum):
    CLOSED  = "closed"
    LOADING = "loading"
    OPEN    = "open"


def _log_notice(message: str) -> None:
    logger.info("Size chart notice: %s", message)


# ── Controller ────────────────────────────────────────────────────────────────

class PresentationController:

    def __init__(
        self,
        document: Document,
        lookup: Callable[[int], Awaitable[LookupResult]],
        notify: Optional[Callable[[str], None]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.document = document
        self.modal    = ensure_modal(document)
        self.state    = ModalState()
        self.view     = ViewState.CLOSED
        self._lookup  = lookup
        self._notify  = notify or _log_notice
        self._timeout = timeout or config.LOOKUP_TIMEOUT_SECS
        self._seq     = 0
        self._tasks: set[asyncio.Task] = set()

    # ── Events ────────────────────────────────────────────────────────────────

    def handle_click(self, target: Element) -> Optional[asyncio.Task]:
        """
        Dispatch a click. Returns the lookup task when the click hit a chart
        button. The backdrop and close control only react when they are the
        target themselves, so clicks on the image or content pass through.
        """
        button = target.closest_class(markup.BUTTON_CLASS)
        if button is not None:
            product_id = parse_product_id(button.attrs.get("data-product-id"))
            task = asyncio.create_task(self.open(product_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return task

        if target is self.modal.close_button or target is self.modal.backdrop:
            self.close()
        return None

    def handle_keyup(self, key: str) -> None:
        if key == ESCAPE_KEY:
            self.close()

    # ── Transitions ───────────────────────────────────────────────────────────

    async def open(self, product_id: int) -> None:
        self._seq += 1
        seq = self._seq
        self.view = ViewState.LOADING
        self.state.visible = False
        self._render()

        try:
            result = await asyncio.wait_for(self._lookup(product_id), self._timeout)
        except asyncio.TimeoutError:
            result = NotFound(TIMEOUT)
        except Exception as exc:
            logger.error("Size chart lookup for product %s raised: %s", product_id, exc)
            result = TransientFailure(UNAVAILABLE)

        if seq != self._seq:
            logger.debug("Dropping stale size chart result for product %s", product_id)
            return
        self._apply(result)

    def close(self) -> None:
        if self.view is ViewState.LOADING:
            self._seq += 1
        self.view = ViewState.CLOSED
        self.state.visible = False
        self._render()

    def _apply(self, result: LookupResult) -> None:
        if isinstance(result, Found):
            self.state.image_url = result.image_url
            self.state.visible   = True
            self.view = ViewState.OPEN
        else:
            self.state.visible = False
            self.view = ViewState.CLOSED
            self._notify(result.message)
        self._render()

    def _render(self) -> None:
        self.modal.backdrop.hidden = not self.state.visible
        self.modal.image.attrs["src"] = self.state.image_url or ""

    async def aclose(self) -> None:
        """Cancel pending lookups (page unload)."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
