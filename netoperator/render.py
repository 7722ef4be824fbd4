"""Render Kubernetes objects from templated YAML or JSON manifest files."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2
import yaml

MANIFEST_FILE_SUFFIXES = ("yaml", "yml", "json")
"""Suffixes of files considered Kubernetes manifests."""


class RenderError(Exception):
    """Raised when a manifest cannot be read, templated or decoded."""


@dataclass
class TemplatingData:
    """Data and extra functions handed to the templating engine."""

    data: Any = None
    funcs: Mapping[str, Callable[..., Any]] | None = None


def indent(spaces: int, value: str) -> str:
    """Indent every line of ``value`` by ``spaces`` spaces."""
    pad = " " * spaces
    return pad + value.replace("\n", "\n" + pad)


def nindent(spaces: int, value: str) -> str:
    """Like indent, with a leading newline."""
    return "\n" + indent(spaces, value)


def nindent_prefix(spaces: int, prefix: str, value: str) -> str:
    """nindent ``prefix + value``, the prefix taking the room of its own length."""
    return nindent(spaces, prefix + value).replace(" ", "", len(prefix))


def _plain(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    return obj


def _to_yaml(obj: Any) -> str:
    text = yaml.safe_dump(_plain(obj), default_flow_style=False, sort_keys=True)
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    return text


def _quote(obj: Any) -> str:
    return json.dumps(obj if isinstance(obj, str) else str(obj), ensure_ascii=False)


def _has_prefix(value: str, prefix: str) -> bool:
    return value.startswith(prefix)


def _template_context(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
    if hasattr(data, "__dict__"):
        return dict(vars(data))
    raise RenderError(f"unsupported templating data of type {type(data).__name__}")


def _environment(funcs: Mapping[str, Callable[..., Any]] | None) -> jinja2.Environment:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.globals.update(
        yaml=_to_yaml,
        quote=_quote,
        indent=indent,
        nindent=nindent,
        nindentPrefix=nindent_prefix,
        hasPrefix=_has_prefix,
    )
    env.filters.update(
        yaml=_to_yaml,
        quote=_quote,
        nindent=lambda value, spaces: nindent(spaces, value),
        nindentPrefix=lambda value, spaces, prefix: nindent_prefix(spaces, prefix, value),
    )
    if funcs:
        env.globals.update(funcs)
    return env


class Renderer:
    """Renders Kubernetes objects from a fixed list of template files."""

    def __init__(self, files: Iterable[str | Path]) -> None:
        self.files = [Path(f) for f in files]

    def render_objects(self, data: TemplatingData) -> list[dict[str, Any]]:
        """Render every file in order and return all objects found."""
        objects: list[dict[str, Any]] = []
        for path in self.files:
            objects.extend(self._render_file(path, data))
        return objects

    def _render_file(self, path: Path, data: TemplatingData) -> list[dict[str, Any]]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RenderError(f"failed to read manifest file {path}: {exc}") from exc

        env = _environment(data.funcs)
        try:
            template = env.from_string(text)
        except jinja2.TemplateSyntaxError as exc:
            raise RenderError(f"failed to parse manifest file {path}: {exc}") from exc

        try:
            rendered = template.render(_template_context(data.data))
        except (jinja2.TemplateError, yaml.YAMLError, TypeError, ValueError,
                AttributeError, KeyError) as exc:
            raise RenderError(f"failed to render manifest {path}: {exc}") from exc

        if not rendered.strip():
            return []

        try:
            documents = list(yaml.safe_load_all(rendered))
        except yaml.YAMLError as exc:
            raise RenderError(f"failed to unmarshal manifest {path}: {exc}") from exc

        objects = []
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, dict):
                raise RenderError(
                    f"failed to unmarshal manifest {path}: document is not an object"
                )
            kind = document.get("kind")
            if not isinstance(kind, str) or not kind:
                continue
            objects.append(document)
        return objects