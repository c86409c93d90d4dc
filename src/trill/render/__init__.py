"""Rendering: nodes components return and the kida-backed renderer."""

from trill.render.nodes import (
    Component,
    Element,
    ErrorBoundary,
    InlineTemplate,
    Suspense,
    Template,
    h,
)
from trill.render.renderer import KidaRenderer, Renderer, create_environment, render_attrs

__all__ = [
    "Component",
    "Element",
    "ErrorBoundary",
    "InlineTemplate",
    "KidaRenderer",
    "Renderer",
    "Suspense",
    "Template",
    "create_environment",
    "h",
    "render_attrs",
]
