#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR RESOURCE PARSER
-----------------------------------
Splits the multi-document stream emitted by `kustomize build` into
individual Kubernetes resources. Each document is decoded on its own:
a malformed or incomplete document is skipped and never aborts the
rest of the stream.
"""

import logging
import os
import re
from typing import Any, Dict, List

from ruamel.yaml import YAML, YAMLError

from kustomize_validator.core.errors import ResourceDecodeError
from kustomize_validator.core.models import DEFAULT_NAMESPACE, ParsedResource

logger = logging.getLogger("kustomize_validator.parser")

# A line consisting solely of the YAML document marker
DOCUMENT_SEPARATOR = re.compile(r"^---[ \t]*$", re.MULTILINE)


def _scalar(value: Any) -> str:
    """Coerces a YAML scalar to text; collections and nulls become ''."""
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _decode_document(yaml: YAML, document: str) -> Dict[str, str]:
    """
    Decodes one YAML document into its identity fields.
    Raises ResourceDecodeError for anything that is not a usable mapping.
    """
    try:
        data = yaml.load(document)
    except YAMLError as e:
        raise ResourceDecodeError(f"malformed YAML: {e}") from e
    except (ValueError, TypeError) as e:
        # Constructor failures, e.g. an impossible timestamp such as 2024-13-45
        raise ResourceDecodeError(f"undecodable scalar: {e}") from e

    if not isinstance(data, dict):
        raise ResourceDecodeError(f"document is a {type(data).__name__}, not a mapping")

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ResourceDecodeError("metadata is not a mapping")

    return {
        "api_version": _scalar(data.get("apiVersion")),
        "kind": _scalar(data.get("kind")),
        "name": _scalar(metadata.get("name")),
        "namespace": _scalar(metadata.get("namespace")),
    }


def relative_source_path(source_path: str, base_dir: str) -> str:
    """Relativizes source_path against base_dir, keeping it unchanged on failure."""
    try:
        return os.path.relpath(source_path, base_dir)
    except ValueError:
        # e.g. different drives on Windows
        return source_path


def parse(raw_output: str, source_path: str, base_dir: str) -> List[ParsedResource]:
    """
    Parses rendered kustomize output into resources.

    Documents without apiVersion, kind or metadata.name are dropped.
    A missing namespace is replaced by DEFAULT_NAMESPACE.
    """
    if not raw_output:
        return []

    yaml = YAML(typ="safe")
    rel_path = relative_source_path(source_path, base_dir)
    resources = []

    for document in DOCUMENT_SEPARATOR.split(raw_output):
        document = document.strip()
        if not document:
            continue

        try:
            fields = _decode_document(yaml, document)
        except ResourceDecodeError as e:
            logger.debug(f"Skipping document from {source_path}: {e}")
            continue

        if not (fields["api_version"] and fields["kind"] and fields["name"]):
            continue

        resources.append(ParsedResource(
            api_version=fields["api_version"],
            kind=fields["kind"],
            name=fields["name"],
            namespace=fields["namespace"] or DEFAULT_NAMESPACE,
            source_path=rel_path,
            raw_content=document,
        ))

    return resources
