"""Graphic name templates rendered once per weather cycle."""

import logging
from dataclasses import dataclass

from wxfeed.config.schema import GraphicTemplate

logger = logging.getLogger(__name__)


class TemplateRenderError(Exception):
    pass


@dataclass(frozen=True)
class RenderedGraphic:
    name: str
    text: str


def render_template(template: GraphicTemplate, context: dict[str, dict]) -> RenderedGraphic:
    """Fill ``{Location[Field]}`` placeholders from per-location values."""
    try:
        text = template.template.format_map(context)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise TemplateRenderError(
            f"Graphic template {template.name!r} could not be rendered: {e!r}"
        ) from e
    return RenderedGraphic(name=template.name, text=text)


def render_all(
    templates: list[GraphicTemplate], context: dict[str, dict]
) -> tuple[list[RenderedGraphic], list[str]]:
    """Render every template; failures are returned as messages, not raised."""
    rendered: list[RenderedGraphic] = []
    errors: list[str] = []
    for template in templates:
        try:
            rendered.append(render_template(template, context))
        except TemplateRenderError as e:
            logger.error("%s", e)
            errors.append(str(e))
    return rendered, errors
