"""YAML fragment extraction for downloaded files.

A source URL may carry extraction parameters next to its ordinary
query string::

    https://config.example/app.yaml?xpath=services.api&newkey=api&token=abc

``split_extraction_params`` separates the reserved parameters from the
ones the server should see; ``extract_yaml`` then turns the downloaded
bytes into the selected fragment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_plus, urlsplit, urlunsplit

import yaml
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_path
from jsonpath_ng.jsonpath import DatumInContext, Fields, Index, Root, This

from confgetter.exceptions import (
    DocumentParseError,
    PathQueryError,
    ResultArityError,
    SerializationError,
)

logger = logging.getLogger(__name__)

YAML_FORMAT = "yaml"
LIST_RESULT_TYPE = "list"
RESERVED_PARAMS = ("xpath", "format", "type", "newkey")
YAML_INDENT = 2

_DOCUMENT_END = "\n...\n"
_STR_TAG = "tag:yaml.org,2002:str"
_SEQ_TAG = "tag:yaml.org,2002:seq"
_MAP_TAG = "tag:yaml.org,2002:map"


@dataclass(frozen=True)
class ExtractionRequest:
    """Extraction parameters pulled off a source URL."""

    xpath: str = ""
    format: str = ""
    result_type: str = ""
    new_key: str = ""

    @property
    def effective_format(self) -> str:
        """Requested format; YAML is implied when only a path is given."""
        if not self.format and self.xpath:
            return YAML_FORMAT
        return self.format

    @property
    def allows_list(self) -> bool:
        return self.result_type == LIST_RESULT_TYPE


def split_extraction_params(url: str) -> tuple[ExtractionRequest, str]:
    """Return the extraction request and ``url`` without reserved params.

    Remaining parameters keep their original order and encoding. When a
    reserved parameter repeats, its first value wins.
    """
    parts = urlsplit(url)
    if not parts.query:
        return ExtractionRequest(), url

    values: dict[str, str] = {}
    kept: list[str] = []
    for segment in parts.query.split("&"):
        if not segment:
            continue
        raw_key, _, raw_value = segment.partition("=")
        key = unquote_plus(raw_key)
        if key in RESERVED_PARAMS:
            values.setdefault(key, unquote_plus(raw_value))
        else:
            kept.append(segment)

    request = ExtractionRequest(
        xpath=values.get("xpath", ""),
        format=values.get("format", ""),
        result_type=values.get("type", ""),
        new_key=values.get("newkey", ""),
    )
    return request, urlunsplit(parts._replace(query="&".join(kept)))


class _BlockDumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False):
        return super().increase_indent(flow, False)


def load_document(content: bytes, *, source: str = "") -> yaml.Node | None:
    """Compose the first YAML document of ``content`` into a node tree.

    Later documents in the stream are ignored. Returns ``None`` for an
    empty stream.
    """
    documents = yaml.compose_all(content, Loader=yaml.SafeLoader)
    try:
        return next(documents, None)
    except yaml.YAMLError as e:
        raise DocumentParseError(source, e) from e
    finally:
        documents.close()


class _NodeIndex:
    """Plain values for a node tree, with a way back from a match to its node.

    Path expressions are evaluated over ordinary dicts and lists so that
    filters can compare values. Serialization works on the nodes, which
    keep each scalar's original text and style.
    """

    def __init__(self, root: yaml.Node, *, source: str = "") -> None:
        self.root = root
        constructor = yaml.constructor.SafeConstructor()
        try:
            self.value = constructor.construct_object(root, deep=True)
        except yaml.YAMLError as e:
            raise DocumentParseError(source, e) from e
        self._values: dict[yaml.Node, Any] = dict(constructor.constructed_objects)
        self._containers = {
            id(value): node
            for node, value in self._values.items()
            if isinstance(value, (dict, list))
        }

    def node_for(self, datum: DatumInContext) -> yaml.Node | None:
        value = datum.value
        if isinstance(value, (dict, list)) and id(value) in self._containers:
            return self._containers[id(value)]
        if datum.context is None:
            return self.root
        parent = self.node_for(datum.context)
        if parent is None:
            return None
        return self._child(parent, datum.path)

    def _child(self, parent: yaml.Node, step: Any) -> yaml.Node | None:
        if isinstance(step, (Root, This)):
            return parent
        if isinstance(step, Fields) and len(step.fields) == 1:
            if not isinstance(parent, yaml.MappingNode):
                return None
            for key_node, value_node in parent.value:
                if self._values.get(key_node) == step.fields[0]:
                    return value_node
            return None
        if isinstance(step, Index):
            # Only sequences are indexable; a filter over a mapping
            # addresses its values in order.
            if isinstance(parent, yaml.SequenceNode):
                items = parent.value
            elif isinstance(parent, yaml.MappingNode):
                items = [value_node for _, value_node in parent.value]
            else:
                return None
            position = _index_position(step)
            if -len(items) <= position < len(items):
                return items[position]
        return None


def _index_position(step: Index) -> int:
    indices = getattr(step, "indices", None)
    if indices:
        return indices[0]
    return step.index


def select_nodes(
    root: yaml.Node | None, request: ExtractionRequest, *, source: str = "",
) -> list[yaml.Node]:
    """Evaluate the request's path against a composed document.

    Matches are the document's own nodes, not copies. An empty path
    selects the whole document.
    """
    if not request.xpath:
        return [] if root is None else [root]
    try:
        expression = parse_path(request.xpath)
    except JSONPathError as e:
        raise PathQueryError(request.xpath, e) from e

    if root is None:
        return []
    index = _NodeIndex(root, source=source)
    matches = []
    try:
        found = expression.find(index.value)
    except (KeyError, TypeError):
        # Indexing a mapping or a non-string scalar selects nothing.
        logger.debug("Path %r does not apply to %s", request.xpath, source or "document")
        found = []
    for match in found:
        node = index.node_for(match)
        if node is not None:
            matches.append(node)
    logger.debug("Path %r matched %d node(s)", request.xpath, len(matches))
    if len(matches) > 1 and not request.allows_list:
        raise ResultArityError(len(matches))
    return matches


def rekey(node: yaml.Node, new_key: str) -> yaml.MappingNode:
    """Wrap ``node`` in a single-entry mapping under ``new_key``."""
    key = yaml.ScalarNode(_STR_TAG, new_key)
    return yaml.MappingNode(_MAP_TAG, [(key, node)], flow_style=False)


def serialize_node(node: yaml.Node) -> str:
    """Serialize ``node`` as YAML with a two-space indent."""
    try:
        text = yaml.serialize(
            node,
            Dumper=_BlockDumper,
            indent=YAML_INDENT,
            allow_unicode=True,
        )
    except yaml.YAMLError as e:
        raise SerializationError(f"cannot marshal node: {e}") from e
    # A bare root scalar is closed with an explicit document end marker.
    if text.endswith(_DOCUMENT_END):
        text = text[: -len(_DOCUMENT_END) + 1]
    return text


def extract_yaml(content: bytes, request: ExtractionRequest, *, source: str = "") -> bytes:
    """Reduce YAML ``content`` to the fragment selected by ``request``.

    An empty match yields empty output. With ``type=list`` several
    matches are emitted together as one sequence. A non-empty
    ``new_key`` wraps the selection in a single-entry mapping. Scalars
    are written back with the text they had in ``content``.
    """
    root = load_document(content, source=source)
    matches = select_nodes(root, request, source=source)
    if not matches:
        return b""

    if len(matches) > 1:
        selected = yaml.SequenceNode(_SEQ_TAG, matches, flow_style=False)
    else:
        selected = matches[0]
    if request.new_key:
        selected = rekey(selected, request.new_key)
    return serialize_node(selected).encode("utf-8")
