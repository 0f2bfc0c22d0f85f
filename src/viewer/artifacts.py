from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any


def serialize_json(payload: dict[str, Any]) -> str:
    """
    Stable JSON serialization for dumps and artifacts.
    """

    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def pretty_description(description: bytes) -> str:
    """
    Indented rendition of a layout description for the raw debug view.

    A description that does not parse is shown as-is (undecodable bytes
    replaced) so the user can see what the converter produced.
    """

    try:
        root = ET.fromstring(description)
    except ET.ParseError:
        return description.decode("utf-8", errors="replace")
    ET.indent(root, space="  ")
    ns = root.tag[1:].partition("}")[0] if root.tag.startswith("{") else None
    try:
        return ET.tostring(root, encoding="unicode", default_namespace=ns) + "\n"
    except ValueError:
        # Some element lives outside the root's namespace; keep prefixes.
        return ET.tostring(root, encoding="unicode") + "\n"


def write_text_artifact(*, text: str, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
