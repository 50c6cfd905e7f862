"""
Request template generator.

Turns an HTTP request description into a ready-to-run code snippet instead of
performing the request. Used by the remote data service when a request's
``outputMode`` names a template format.

Supported formats: curl, powershell, python, javascript, java.

String literals are escaped per target:
- shell: single-quoted, ``'`` written as ``'"'"'``
- PowerShell: single-quoted, ``'`` doubled
- JavaScript/Java: JSON string literals
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pprint import pformat
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, Field, field_validator

TEMPLATE_FORMATS = ("curl", "powershell", "python", "javascript", "java")


class RequestConfig(BaseModel):
    """HTTP request to render as a template."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    query: dict[str, Any] = Field(default_factory=dict)
    timeout: int | float | None = 30

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {str(key): str(item) for key, item in value.items()}
        return value


def escape_shell(value: str) -> str:
    return "'" + value.replace("'", "'\"'\"'") + "'"


def escape_powershell(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def escape_json(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _has_body(config: RequestConfig) -> bool:
    return config.method.upper() != "GET" and config.body not in (None, "", False, 0)


def _full_url(config: RequestConfig) -> str:
    query_string = urlencode({key: str(value) for key, value in config.query.items()})
    if not query_string:
        return config.url
    separator = "&" if "?" in config.url else "?"
    return f"{config.url}{separator}{query_string}"


def _body_text(body: Any, indent: int | None = None) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, indent=indent, ensure_ascii=False)


def _is_json(headers: Mapping[str, str]) -> bool:
    return "json" in headers.get("Content-Type", "")


class RequestTemplateGenerator:
    """
    Render request descriptions as code snippets.

    Example:
        generator = RequestTemplateGenerator()
        generator.generate("curl", {"url": "https://api.example.com/x", "method": "POST",
                                    "headers": {"Content-Type": "application/json"},
                                    "body": {"a": 1}})
        # # Generated cURL command
        # curl -X POST 'https://api.example.com/x' \\
        #   -H 'Content-Type: application/json' \\
        #   -d '{
        #   "a": 1
        # }'
    """

    def __init__(self) -> None:
        self._generators: dict[str, Callable[[RequestConfig, bool], str]] = {
            "curl": self.curl,
            "powershell": self.powershell,
            "python": self.python,
            "javascript": self.javascript,
            "java": self.java,
        }

    def generate(
        self,
        format: str,
        config: RequestConfig | Mapping[str, Any],
        include_comments: bool = True,
    ) -> str:
        """
        Render one template.

        Args:
            format: Template format (case-insensitive)
            config: Request description
            include_comments: Prefix the snippet with descriptive comments

        Raises:
            ValueError: Unknown format
        """
        generator = self._generators.get(format.lower())
        if generator is None:
            raise ValueError(f"Unsupported template format: {format}")
        if not isinstance(config, RequestConfig):
            config = RequestConfig.model_validate(config)
        return generator(config, include_comments)

    def curl(self, config: RequestConfig, include_comments: bool = True) -> str:
        method = config.method.upper()
        command = "curl"
        if method != "GET":
            command += f" -X {method}"
        command += f" {escape_shell(_full_url(config))}"

        for key, value in config.headers.items():
            command += f" \\\n  -H {escape_shell(f'{key}: {value}')}"

        if _has_body(config):
            command += f" \\\n  -d {escape_shell(_body_text(config.body, indent=2))}"

        if include_comments:
            return f"# Generated cURL command\n{command}"
        return command

    def powershell(self, config: RequestConfig, include_comments: bool = True) -> str:
        method = config.method.upper()
        lines: list[str] = []
        if include_comments:
            lines += ["# Generated PowerShell script", ""]

        lines.append(f"$uri = {escape_powershell(_full_url(config))}")
        lines.append(f"$method = '{method}'")

        if config.headers:
            lines.append("$headers = @{")
            for key, value in config.headers.items():
                lines.append(f"    '{key}' = {escape_powershell(value)}")
            lines.append("}")

        has_body = _has_body(config)
        if has_body:
            lines += ["$body = @'", _body_text(config.body, indent=2), "'@"]

        call = "$response = Invoke-RestMethod -Uri $uri -Method $method"
        if config.headers:
            call += " -Headers $headers"
        if has_body:
            call += " -Body $body"
            if _is_json(config.headers):
                call += ' -ContentType "application/json"'
        lines += ["", call, ""]

        if include_comments:
            lines.append("# Display response")
        lines.append("$response | ConvertTo-Json -Depth 10")
        return "\n".join(lines)

    def python(self, config: RequestConfig, include_comments: bool = True) -> str:
        has_body = _has_body(config)
        lines: list[str] = []
        if include_comments:
            lines.append("# Generated Python requests code")
        lines += ["import requests", "", f"url = {config.url!r}"]

        if config.query:
            lines.append(f"params = {pformat(config.query, sort_dicts=False)}")
        if config.headers:
            lines.append(f"headers = {pformat(config.headers, sort_dicts=False)}")
        if has_body:
            lines.append(f"data = {pformat(config.body, sort_dicts=False)}")
        lines.append("")

        call = f"response = requests.{config.method.lower()}(url"
        if config.query:
            call += ", params=params"
        if config.headers:
            call += ", headers=headers"
        if has_body:
            call += ", json=data" if _is_json(config.headers) else ", data=data"
        if config.timeout:
            call += f", timeout={config.timeout}"
        lines += [call + ")", ""]

        if include_comments:
            lines.append("# Handle response")
        lines.append('print(f"Status Code: {response.status_code}")')
        lines.append('print(f"Response: {response.text}")')
        return "\n".join(lines)

    def javascript(self, config: RequestConfig, include_comments: bool = True) -> str:
        script = ""
        if include_comments:
            script += "// Generated JavaScript fetch code\n\n"

        script += "async function makeRequest() {\n"
        script += f"  const url = {escape_json(_full_url(config))};\n\n"
        script += "  const options = {\n"
        script += f"    method: '{config.method.upper()}',\n"
        if config.headers:
            script += f"    headers: {json.dumps(config.headers, indent=6, ensure_ascii=False)},\n"
        if _has_body(config):
            script += f"    body: {escape_json(_body_text(config.body))}\n"
        script += "  };\n\n"

        script += (
            "  try {\n"
            "    const response = await fetch(url, options);\n"
            "    const data = await response.json();\n"
            "    \n"
            '    console.log("Status:", response.status);\n'
            '    console.log("Response:", data);\n'
            "    \n"
            "    return data;\n"
            "  } catch (error) {\n"
            '    console.error("Request failed:", error);\n'
            "    throw error;\n"
            "  }\n"
            "}\n\n"
        )
        if include_comments:
            script += "// Execute request\n"
        script += "makeRequest();"
        return script

    def java(self, config: RequestConfig, include_comments: bool = True) -> str:
        method = config.method.upper()
        has_body = _has_body(config)
        script = ""
        if include_comments:
            script += "// Generated Java OkHttp code\n"

        script += "import okhttp3.*;\nimport java.io.IOException;\n\n"
        script += "public class HttpRequest {\n"
        script += "    public static void main(String[] args) throws IOException {\n"
        script += "        OkHttpClient client = new OkHttpClient();\n\n"
        script += f"        String url = {escape_json(_full_url(config))};\n\n"

        if has_body:
            media_type = config.headers.get("Content-Type", "application/json")
            script += f'        MediaType mediaType = MediaType.parse("{media_type}");\n'
            body = escape_json(_body_text(config.body))
            script += f"        RequestBody body = RequestBody.create(mediaType, {body});\n\n"

        script += "        Request.Builder requestBuilder = new Request.Builder()\n"
        script += "                .url(url)"
        if method != "GET":
            if has_body:
                script += f"\n                .{method.lower()}(body)"
            else:
                script += (
                    f"\n                .{method.lower()}"
                    '(RequestBody.create(MediaType.parse(""), ""))'
                )
        for key, value in config.headers.items():
            script += f"\n                .addHeader({escape_json(key)}, {escape_json(value)})"
        script += ";\n\n"

        script += "        Request request = requestBuilder.build();\n\n"
        script += "        try (Response response = client.newCall(request).execute()) {\n"
        script += '            System.out.println("Status: " + response.code());\n'
        script += '            System.out.println("Response: " + response.body().string());\n'
        script += "        }\n"
        script += "    }\n"
        script += "}"
        return script


request_template_generator = RequestTemplateGenerator()
