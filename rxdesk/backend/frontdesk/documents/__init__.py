from .factory import get_renderer
from .types import PrescriptionViewModel, RenderedDocument, build_view_model

__all__ = ["get_renderer", "build_view_model", "PrescriptionViewModel", "RenderedDocument"]
