"""
OpenAPI import for automation uploads.

Accepts an OpenAPI 3.x (or Swagger 2) document as a mapping, JSON text or
YAML text and converts it to the Nikode collection format: one default
environment carrying ``baseUrl`` and one request per operation, grouped into
a folder per first tag. Untagged requests follow the folders.

Only local ``#/...`` references are followed.
"""

from __future__ import annotations

import json
import re
import secrets
from typing import Any, Optional

import yaml

from app.core.errors import ErrorKind, ServiceError

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")
DEFAULT_ENVIRONMENT_ID = "env-default"
DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TITLE = "Imported API"
DEFAULT_VERSION = "1.0.0"

_PATH_PARAM = re.compile(r"\{([^}]+)\}")
_NON_SLUG = re.compile(r"[^a-zA-Z0-9]+")


def _invalid(reason: str) -> ServiceError:
    return ServiceError(ErrorKind.BAD_REQUEST, f"invalid openapi spec: {reason}")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_spec(raw: Any) -> dict:
    """Load a document from a mapping, JSON text or YAML text.

    Text is tried as JSON first, then as YAML. The result is normalised
    through JSON so YAML dates and similar scalars become strings.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise _invalid("body is not valid UTF-8")

    if isinstance(raw, str):
        if not raw.strip():
            raise ServiceError(ErrorKind.BAD_REQUEST, "spec is required")
        try:
            document = json.loads(raw)
        except ValueError:
            try:
                document = yaml.safe_load(raw)
            except yaml.YAMLError as exc:
                raise _invalid(str(exc).splitlines()[0])
    else:
        document = raw

    if not isinstance(document, dict):
        raise _invalid("expected a mapping at the top level")
    version = document.get("openapi") or document.get("swagger")
    if not isinstance(version, (str, int, float)) or isinstance(version, bool):
        raise _invalid("missing openapi version")
    if not isinstance(document.get("paths") or {}, dict):
        raise _invalid("paths must be a mapping")

    return json.loads(json.dumps(document, default=str))


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def convert_to_collection(spec: dict) -> dict:
    """Build Nikode collection data from a parsed document."""
    info = spec.get("info")
    if not isinstance(info, dict):
        info = {}
    return {
        "name": info.get("title") or DEFAULT_TITLE,
        "version": str(info.get("version") or DEFAULT_VERSION),
        "environments": [
            {
                "id": DEFAULT_ENVIRONMENT_ID,
                "name": "Default",
                "variables": [{"key": "baseUrl", "value": _base_url(spec), "enabled": True}],
            }
        ],
        "activeEnvironmentId": DEFAULT_ENVIRONMENT_ID,
        "items": _convert_paths(spec),
    }


def _base_url(spec: dict) -> str:
    servers = spec.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        url = servers[0].get("url")
        if url:
            return str(url)
    return DEFAULT_BASE_URL


def _convert_paths(spec: dict) -> list[dict]:
    folders: dict[str, dict] = {}
    root_items: list[dict] = []

    for path, path_item in (spec.get("paths") or {}).items():
        path_item, _ = _resolve(spec, path_item)
        if not isinstance(path_item, dict):
            continue
        shared_params = path_item.get("parameters") or []
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            request = _convert_operation(spec, path, method.upper(), operation, shared_params)

            tags = operation.get("tags") or []
            tag = str(tags[0]) if tags else ""
            if not tag:
                root_items.append(request)
                continue
            if tag not in folders:
                folders[tag] = {
                    "id": _generate_id("folder", tag),
                    "type": "folder",
                    "name": tag,
                    "items": [],
                }
            folders[tag]["items"].append(request)

    return list(folders.values()) + root_items


def _convert_operation(
    spec: dict, path: str, method: str, operation: dict, shared_params: list
) -> dict:
    operation_id = operation.get("operationId") or f"{method.lower()}-{_slugify(path)}"
    parameters = _merge_parameters(spec, shared_params, operation.get("parameters") or [])

    request: dict[str, Any] = {
        "id": _generate_id("req", operation_id),
        "type": "request",
        "name": operation.get("summary") or f"{method} {path}",
        "method": method,
        "url": "{{baseUrl}}" + _PATH_PARAM.sub(r"{{\1}}", path),
    }
    params = _key_values(spec, parameters, "query")
    if params:
        request["params"] = params
    headers = _key_values(spec, parameters, "header")
    if headers:
        request["headers"] = headers
    request["body"] = _convert_body(spec, operation.get("requestBody"))
    request["scripts"] = {"pre": "", "post": ""}
    if operation.get("description"):
        request["docs"] = operation["description"]
    return request


def _merge_parameters(spec: dict, shared: list, own: list) -> list[dict]:
    """Path-level parameters, overridden by operation-level ones of the same name and location."""
    merged: dict[tuple, dict] = {}
    for ref in list(shared) + list(own):
        param, _ = _resolve(spec, ref)
        if isinstance(param, dict) and param.get("name"):
            merged[(param.get("in"), param["name"])] = param
    return list(merged.values())


def _key_values(spec: dict, parameters: list[dict], location: str) -> list[dict]:
    return [
        {
            "key": param["name"],
            "value": _example_value(spec, param.get("schema")),
            "enabled": bool(param.get("required")),
        }
        for param in parameters
        if param.get("in") == location
    ]


def _convert_body(spec: dict, request_body: Any) -> dict:
    request_body, _ = _resolve(spec, request_body)
    if not isinstance(request_body, dict) or not isinstance(request_body.get("content"), dict):
        return {"type": "none"}

    content = request_body["content"]
    if "application/json" in content:
        schema = (content["application/json"] or {}).get("schema")
        return {"type": "json", "content": _example_json(spec, schema)}
    if "multipart/form-data" in content:
        schema = (content["multipart/form-data"] or {}).get("schema")
        return {"type": "form-data", "entries": _form_entries(spec, schema)}
    if "application/x-www-form-urlencoded" in content:
        schema = (content["application/x-www-form-urlencoded"] or {}).get("schema")
        return {"type": "x-www-form-urlencoded", "entries": _form_entries(spec, schema)}
    return {"type": "raw", "content": ""}


# ---------------------------------------------------------------------------
# Schemas and examples
# ---------------------------------------------------------------------------

def _example_json(spec: dict, schema: Any) -> str:
    resolved, _ = _resolve(spec, schema)
    if not isinstance(resolved, dict):
        return "{}"
    return json.dumps(_schema_example(spec, schema, frozenset()), indent=2)


def _schema_example(spec: dict, schema: Any, seen: frozenset) -> Any:
    schema, seen = _resolve(spec, schema, seen)
    if not isinstance(schema, dict):
        return None
    if schema.get("example") is not None:
        return schema["example"]
    if schema.get("default") is not None:
        return schema["default"]

    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        schema_type = schema_type[0] if schema_type else None
    properties = schema.get("properties") or {}
    if schema_type is None:
        if not properties:
            return None
        schema_type = "object"

    if schema_type == "object":
        return {name: _schema_example(spec, prop, seen) for name, prop in properties.items()}
    if schema_type == "array":
        if schema.get("items"):
            return [_schema_example(spec, schema["items"], seen)]
        return []
    if schema_type == "string":
        enum = schema.get("enum") or []
        return enum[0] if enum else "string"
    if schema_type in ("integer", "number"):
        return 0
    if schema_type == "boolean":
        return False
    return None


def _form_entries(spec: dict, schema: Any) -> list[dict]:
    schema, _ = _resolve(spec, schema)
    if not isinstance(schema, dict):
        return []
    required = set(schema.get("required") or [])
    return [
        {
            "key": name,
            "value": _example_value(spec, prop),
            "enabled": name in required,
        }
        for name, prop in (schema.get("properties") or {}).items()
    ]


def _example_value(spec: dict, schema: Any) -> str:
    schema, _ = _resolve(spec, schema)
    if not isinstance(schema, dict):
        return ""
    for key in ("example", "default"):
        if schema.get(key) is not None:
            return _stringify(schema[key])
    return ""


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve(spec: dict, node: Any, seen: frozenset = frozenset()) -> tuple[Any, frozenset]:
    """Follow local $refs. A cycle or a dangling reference resolves to None."""
    while isinstance(node, dict) and isinstance(node.get("$ref"), str):
        ref = node["$ref"]
        if ref in seen or not ref.startswith("#/"):
            return None, seen
        seen = seen | {ref}
        node = _lookup(spec, ref)
    return node, seen


def _lookup(spec: dict, ref: str) -> Optional[Any]:
    node: Any = spec
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _slugify(value: str) -> str:
    return _NON_SLUG.sub("-", value).strip("-").lower()


def _generate_id(prefix: str, value: str) -> str:
    return f"{prefix}-{_slugify(value)[:20]}-{secrets.token_hex(4)}"
