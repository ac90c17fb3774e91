"""
BaseDocumentRenderer: abstract base of every prescription renderer.

A new output format only needs to:
1. subclass BaseDocumentRenderer
2. implement render()
3. register one line in factory.py

Views never know which renderer produced the document.
"""

from abc import ABC, abstractmethod

from .types import PrescriptionViewModel, RenderedDocument


class BaseDocumentRenderer(ABC):

    @abstractmethod
    def render(self, view_model: PrescriptionViewModel) -> RenderedDocument:
        """
        Turn a finished view model into a document.

        Must be a pure function of the view model: no backend calls, no
        feedback into composer or history state.
        """
