# File generated from its async equivalent, toolchat/aio/_openapi.py
"""
Remote plugins: functions discovered from an OpenAPI document, typically found via
an `ai-plugin.json` manifest.

Only JSON documents are supported.
"""

from typing import Any
from dataclasses import dataclass
from urllib.parse import quote, urljoin
import logging
import re
import httpx
from ._registry import RegisteredFunction
from .._common import (
    FunctionDeclaration,
    ParameterDeclaration,
    StructuredResponse,
    InvocationError,
    MalformedArgumentsError,
    PluginLoadError,
)

__all__ = ["OpenAPIPluginLoader", "RemoteOperation", "RemoteParameter"]

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "patch", "head", "options")
SUPPORTED_LOCATIONS = ("path", "query", "header")


def sanitize_name(name: str) -> str:
    """
    Make a string usable as a function name or namespace.
    """
    name = re.sub(r"[^A-Za-z0-9_]+", "_", name).strip("_")
    return name or "_"


@dataclass(slots=True, frozen=True)
class RemoteParameter:
    name: str
    location: str
    required: bool


@dataclass(slots=True, frozen=True, kw_only=True)
class RemoteOperation:
    """
    Invocable function that calls one operation of a remote HTTP API.
    """

    client: httpx.Client
    base_url: str
    method: str
    path: str
    parameters: tuple[RemoteParameter, ...] = ()

    def __call__(self, arguments: dict[str, Any], /) -> StructuredResponse:
        path, query, headers = self.path, {}, {}
        for param in self.parameters:
            value = arguments.get(param.name)
            if value is None:
                if param.required:
                    raise MalformedArgumentsError(
                        f"Missing required parameter {param.name!r}."
                    )
                continue
            if param.location == "path":
                path = path.replace(f"{{{param.name}}}", quote(str(value), safe=""))
            elif param.location == "query":
                query[param.name] = value
            else:
                headers[param.name] = str(value)

        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        try:
            response = self.client.request(
                self.method.upper(), url, params=query, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise InvocationError(
                f"{self.method.upper()} {url} returned {e.response.status_code}: "
                f"{e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise InvocationError(f"{self.method.upper()} {url} failed: {e}") from e

        return StructuredResponse(
            content=response.text,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )


class OpenAPIPluginLoader:
    """
    Discovers remote functions at startup. The HTTP client is used both for
    discovery and, later, by the returned operations, so it must outlive them.
    Closing it is up to the caller.
    """

    def __init__(self, client: httpx.Client):
        self.client = client

    def load(self, namespace: str, url: str) -> list[RegisteredFunction]:
        """
        Load a plugin from a manifest URL (or directly from an OpenAPI document URL).
        """
        namespace = sanitize_name(namespace)
        document = self._fetch_json(url)

        if "openapi" not in document and "swagger" not in document:
            api = document.get("api")
            if not isinstance(api, dict) or not api.get("url"):
                raise PluginLoadError(f"{url} is not a plugin manifest with an API url")
            if api.get("type", "openapi") != "openapi":
                raise PluginLoadError(f"Unsupported plugin API type {api['type']!r}.")
            url = urljoin(url, api["url"])
            document = self._fetch_json(url)

        try:
            entries = self.parse_document(namespace, url, document)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PluginLoadError(f"{url} is not a usable OpenAPI document: {e}") from e
        logger.info("Loaded %d function(s) for plugin %s", len(entries), namespace)
        return entries

    def parse_document(
        self, namespace: str, url: str, document: dict[str, Any]
    ) -> list[RegisteredFunction]:
        """
        One function per operation in the OpenAPI document.
        """
        servers = [s for s in document.get("servers") or [] if isinstance(s, dict)]
        base_url = urljoin(url, (servers[0].get("url") or "/") if servers else "/")

        paths = document.get("paths") or {}
        if not isinstance(paths, dict):
            raise PluginLoadError(f"{url} has no valid paths object.")

        entries: list[RegisteredFunction] = []
        for path, item in paths.items():
            # Extension fields (x-...) may sit next to the paths.
            if path.startswith("x-") or not isinstance(item, dict):
                continue
            shared = item.get("parameters") or []
            for method in HTTP_METHODS:
                if not isinstance(operation := item.get(method), dict):
                    continue
                entries.append(
                    self._operation_entry(
                        namespace, base_url, method, path, operation, shared
                    )
                )
        return entries

    def _operation_entry(
        self,
        namespace: str,
        base_url: str,
        method: str,
        path: str,
        operation: dict[str, Any],
        shared_parameters: list[dict[str, Any]],
    ) -> RegisteredFunction:
        name = sanitize_name(operation.get("operationId") or f"{method} {path}")
        description = operation.get("summary") or operation.get("description") or ""

        # Operation-level parameters override path-level ones with the same name.
        merged: dict[tuple[str, str], dict[str, Any]] = {}
        for param in [*shared_parameters, *(operation.get("parameters") or [])]:
            if (
                not isinstance(param, dict)
                or "$ref" in param
                or not param.get("name")
                or param.get("in") not in SUPPORTED_LOCATIONS
            ):
                continue
            merged[(param["name"], param["in"])] = param

        declared: list[ParameterDeclaration] = []
        remote: list[RemoteParameter] = []
        for param in merged.values():
            required = bool(param.get("required")) or param["in"] == "path"
            declared.append(
                ParameterDeclaration(
                    name=param["name"],
                    type=(param.get("schema") or {}).get("type", "string"),
                    description=param.get("description", ""),
                    required=required,
                )
            )
            remote.append(RemoteParameter(param["name"], param["in"], required))

        declaration = FunctionDeclaration(
            namespace=namespace,
            name=name,
            description=description,
            parameters=tuple(declared),
        )
        unit = RemoteOperation(
            client=self.client,
            base_url=base_url,
            method=method,
            path=path,
            parameters=tuple(remote),
        )
        return RegisteredFunction(unit, declaration)

    def _fetch_json(self, url: str) -> dict[str, Any]:
        try:
            response = self.client.get(url, follow_redirects=True)
            response.raise_for_status()
            document = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PluginLoadError(f"Failed to load {url}: {e}") from e
        if not isinstance(document, dict):
            raise PluginLoadError(f"{url} did not return a JSON object.")
        return document
