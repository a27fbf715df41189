from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from kielcleanup.core.errors import ConfigurationError
from kielcleanup.core.normalization.authority import MarkerKind

ENV_CONFIG_PATH = "KIELCLEANUP_CONFIG"
ENV_LOG_LEVEL = "KIELCLEANUP_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class CleanupConfig:
    """Read-only settings for one cleanup run.

    Every section is optional; an unset section disables its stage.

    Supported schema (YAML/JSON)

    composite:
      source: Format
      labels:
        Breite: SizeWidth
    authority:
      marker: gnd | pipe
      consume_sources: false
    persons:
      CreatorRaw: Creator
    corporates:
      CorporateRaw: CorporateCreator
    authority_fields:
      - SubjectTopic
    images:
      unit_id_field: UnitID
      import_folder: /data/import
      target_folder: /data/images/master
    steps_to_skip:
      - Scanning
    """

    composite_source: Optional[str] = None
    composite_labels: Tuple[Tuple[str, str], ...] = ()
    marker: MarkerKind = MarkerKind.GND
    consume_sources: bool = False
    persons: Tuple[Tuple[str, str], ...] = ()
    corporates: Tuple[Tuple[str, str], ...] = ()
    authority_fields: Tuple[str, ...] = ()
    unit_id_field: Optional[str] = None
    import_folder: Optional[str] = None
    target_folder: Optional[str] = None
    steps_to_skip: Tuple[str, ...] = ()

    @property
    def composite_targets(self) -> List[str]:
        return [target for _label, target in self.composite_labels]


def _strip_comment(line: str) -> str:
    """Drop a trailing comment.

    As in YAML, "#" opens a comment only outside quotes and at the start of
    the line or after whitespace, so "/data/#scans" stays intact.
    """

    quote = ""
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in {'"', "'"} and (i == 0 or line[i - 1] in " :-"):
            quote = ch
        elif ch == "#" and (i == 0 or line[i - 1] in " \t"):
            return line[:i].rstrip()
    return line.rstrip()


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        return text[1:-1]
    return text


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _parse_minimal_yaml(text: str) -> Dict[str, Any]:
    """Parse the YAML subset used by cleanup configs.

    Supports:
    - Nested mappings by indentation
    - Lists of scalars ("- item")
    - Scalar strings, optionally quoted

    This is not a general YAML parser.

    Time:  O(n)
    Space: O(n)
    """

    lines = [ln for ln in (_strip_comment(raw) for raw in text.splitlines()) if ln.strip()]
    root: Dict[str, Any] = {}
    stack: List[Tuple[int, Dict[str, Any]]] = [(-1, root)]

    i = 0
    while i < len(lines):
        line = lines[i]
        indent = _indent_of(line)
        stripped = line.strip()

        while indent <= stack[-1][0]:
            stack.pop()
        cur = stack[-1][1]

        if stripped.startswith("-"):
            raise ValueError(f"List item without a key: {line}")
        if ":" not in stripped:
            raise ValueError(f"Invalid line (expected key: value): {line}")

        key, rest = stripped.split(":", 1)
        key = _unquote(key.strip())
        rest = rest.strip()
        i += 1

        if rest == "[]":
            cur[key] = []
            continue
        if rest:
            cur[key] = _unquote(rest)
            continue

        items: List[str] = []
        while i < len(lines) and _indent_of(lines[i]) > indent and lines[i].strip().startswith("-"):
            items.append(_unquote(lines[i].strip()[1:].strip()))
            i += 1
        if items:
            cur[key] = items
            continue

        nested: Dict[str, Any] = {}
        cur[key] = nested
        stack.append((indent, nested))

    return root


def _parse_json(text: str) -> Dict[str, Any]:
    obj = json.loads(text)
    if not isinstance(obj, dict):
        raise ValueError("Config JSON must be an object")
    return obj


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None or value == "":
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{key} must be a mapping")
    return value


def _pairs(data: Mapping[str, Any], key: str) -> Tuple[Tuple[str, str], ...]:
    section = _section(data, key)
    out = []
    for k, v in section.items():
        if not isinstance(v, str) or not v.strip():
            raise ConfigurationError(f"{key}.{k} must name a target field")
        out.append((str(k), v.strip()))
    return tuple(out)


def _str_list(data: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return tuple(x.strip() for x in value if x.strip())


def _opt_str(section: Mapping[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def config_from_mapping(data: Mapping[str, Any]) -> CleanupConfig:
    """Validate a parsed config mapping and build a CleanupConfig.

    Raises
    - ConfigurationError: on malformed sections or unknown marker kinds.
    """

    composite = _section(data, "composite")
    authority = _section(data, "authority")
    images = _section(data, "images")

    marker_raw = str(authority.get("marker", MarkerKind.GND.value)).strip().lower()
    try:
        marker = MarkerKind(marker_raw)
    except ValueError:
        raise ConfigurationError(f"invalid authority.marker: {marker_raw}") from None

    return CleanupConfig(
        composite_source=_opt_str(composite, "source"),
        composite_labels=_pairs(composite, "labels"),
        marker=marker,
        consume_sources=_bool(authority.get("consume_sources", False), "authority.consume_sources"),
        persons=_pairs(data, "persons"),
        corporates=_pairs(data, "corporates"),
        authority_fields=_str_list(data, "authority_fields"),
        unit_id_field=_opt_str(images, "unit_id_field"),
        import_folder=_opt_str(images, "import_folder"),
        target_folder=_opt_str(images, "target_folder"),
        steps_to_skip=_str_list(data, "steps_to_skip"),
    )


def load_config(path: str | os.PathLike[str]) -> CleanupConfig:
    """Load a cleanup config from YAML/JSON.

    Time:  O(n)
    Space: O(n)
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read config {p}: {e}") from e

    # JSON by suffix or shape, everything else is the YAML subset.
    try:
        if p.suffix.lower() == ".json" or text.lstrip().startswith("{"):
            data = _parse_json(text)
        else:
            data = _parse_minimal_yaml(text)
    except ValueError as e:
        raise ConfigurationError(f"invalid config {p}: {e}") from e

    return config_from_mapping(data)
