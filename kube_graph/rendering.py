"""Template-based rendering of a Graph into text formats (Cypher, Graphviz DOT, ...)."""

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError

from kube_graph.exceptions import RenderError, UnknownFormatError

if TYPE_CHECKING:
    from kube_graph.graph import Graph

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

BUILTIN_FORMATS = {
    "cypher": "cypher.j2",
    "graphviz": "graphviz.j2",
}

_NON_TOKEN = re.compile(r"[^A-Za-z0-9]+")


def to_json(value: Any) -> str:
    """Compact JSON; non-ASCII is kept as-is."""
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False, default=str)


def to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, sort_keys=True, allow_unicode=True).strip("\n")


def underscore(value: str) -> str:
    """
    Lowercase and collapse every run of non-alphanumerics into "_".

    Example:
        >>> underscore("app.kubernetes.io/Name")
        'app_kubernetes_io_name'
    """
    return _NON_TOKEN.sub("_", str(value).lower())


def color(value: str) -> str:
    """Deterministic "#rrggbb" color from the first three bytes of the MD5 of a string."""
    return "#" + hashlib.md5(str(value).encode("utf-8")).hexdigest()[:6]


class Renderer:
    """
    Renders graphs through named jinja2 templates.

    The built-in "cypher" and "graphviz" formats are loaded when the renderer
    is constructed; more can be added with ``register``. Templates receive
    ``graph`` and can use the ``json``, ``yaml``, ``underscore`` and ``color``
    filters. Node and relationship order is not defined, so templates sort.

    Example:
        >>> renderer = Renderer()
        >>> renderer.register(
        ...     "csv", "{% for n in graph.nodes() %}{{ n.uid }},{{ n.kind }}\\n{% endfor %}"
        ... )
        >>> renderer.render(graph, "csv")
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["json"] = to_json
        self.env.filters["yaml"] = to_yaml
        self.env.filters["underscore"] = underscore
        self.env.filters["color"] = color

        self._templates: dict[str, Template] = {}
        for name, filename in BUILTIN_FORMATS.items():
            self._templates[name] = self.env.get_template(filename)

    @property
    def formats(self) -> list[str]:
        return sorted(self._templates)

    def register(self, name: str, source: str) -> None:
        """
        Register a template under a format name, replacing any existing one.

        Raises:
            RenderError: If the template does not parse
        """
        try:
            self._templates[name] = self.env.from_string(source)
        except TemplateError as e:
            raise RenderError(f"Invalid template for format {name!r}: {e}") from e
        logger.debug(f"Registered output format {name}")

    def render(self, graph: "Graph", format: str) -> str:
        """
        Render a graph in the requested format.

        Raises:
            UnknownFormatError: If no template is registered under format
            RenderError: If the template fails while rendering
        """
        template = self._templates.get(format)
        if template is None:
            raise UnknownFormatError(
                f"Unknown output format {format!r}, expected one of: {', '.join(self.formats)}"
            )

        try:
            return template.render(graph=graph)
        except TemplateError as e:
            raise RenderError(f"Failed to render {format}: {e}") from e

    def write(self, graph: "Graph", stream: TextIO, format: str) -> None:
        """Render into a stream. Nothing is written if rendering fails."""
        stream.write(self.render(graph, format))
