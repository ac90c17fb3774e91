"""
Factory: return the renderer registered for a document kind.

Adding an output format:
  1. add a XxxRenderer(BaseDocumentRenderer) class in services.py
  2. add one line to the registry below
No view code changes.
"""

from ..exceptions import ValidationError
from .base import BaseDocumentRenderer


def _build_registry() -> dict[str, type[BaseDocumentRenderer]]:
    # deferred so the template engine is not touched at import time
    from .services import HtmlPrintRenderer, TextDownloadRenderer

    return {
        "print":    HtmlPrintRenderer,
        "download": TextDownloadRenderer,
    }


def get_renderer(kind: str) -> BaseDocumentRenderer:
    """
    Raises:
        ValidationError: unknown kind
    """
    registry = _build_registry()
    renderer_cls = registry.get(kind)

    if renderer_cls is None:
        raise ValidationError(
            message=f"Unknown document kind: {kind!r}.",
            code="UNKNOWN_RENDERER",
            detail={"known_kinds": list(registry.keys())},
        )

    return renderer_cls()
