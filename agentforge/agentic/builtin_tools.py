"""
Built-in Tools
==============

The fixed registry of tools that ship with AgentForge. Built-ins always win
over database rows with the same name (see ``tool_resolver``).

Each tool is a module-level ToolDefinition with a pydantic parameter model.
They hold no per-run state, so one instance serves every run.

Several tools are demonstrations: web search, weather, email, data query,
translation and file access return canned results. ``calculator``,
``jsonParser`` and ``httpRequest`` do real work.
"""

import json
import random
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from agentforge.agentic.context import RunContext
from agentforge.agentic.expressions import ExpressionError, evaluate
from agentforge.agentic.schema_bridge import to_vendor_params
from agentforge.agentic.tools import ToolDefinition
from agentforge.models.entities import Tool
from agentforge.settings import settings


class _Params(BaseModel):
    model_config = {"populate_by_name": True}


class CalculatorParams(_Params):
    expression: str = Field(..., description="Math expression to evaluate")


class WebSearchParams(_Params):
    query: str = Field(..., description="Search query")
    limit: float | None = Field(None, description="Maximum number of results")


class WeatherParams(_Params):
    location: str = Field(..., description="City or coordinates")


class JsonParserParams(_Params):
    json_text: str = Field(..., alias="json", description="JSON string to parse")
    path: str | None = Field(None, description="JSONPath to extract")


class EmailSenderParams(_Params):
    to: str = Field(..., description="Recipient email address")
    subject: str = Field(..., description="Email subject")
    body: str = Field(..., description="Email body")


class DataQueryParams(_Params):
    query: str = Field(..., description="SQL or query string")
    database: str | None = Field(None, description="Database name")


class TranslatorParams(_Params):
    text: str = Field(..., description="Text to translate")
    target_language: str = Field(..., alias="targetLanguage", description="Target language code")
    source_language: str | None = Field(
        None, alias="sourceLanguage", description="Source language code"
    )


class FileReaderParams(_Params):
    path: str = Field(..., description="File path to read")


class FileWriterParams(_Params):
    path: str = Field(..., description="File path to write")
    content: str = Field(..., description="Content to write")


class HttpRequestParams(_Params):
    url: str = Field(..., description="URL to request")
    method: str | None = Field(None, description="HTTP method (GET, POST, etc.)")
    headers: dict[str, str] | None = Field(None, description="Request headers")
    body: str | None = Field(None, description="Request body")


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


async def calculator(params: CalculatorParams, context: RunContext) -> str:
    try:
        result = evaluate(params.expression, arithmetic_only=True)
        if isinstance(result, float) and result.is_integer():
            result = int(result)
        # str() of an int past sys.get_int_max_str_digits() raises ValueError
        return f"Result: {result}"
    except (ExpressionError, ValueError):
        return "Error: Invalid mathematical expression"


async def web_search(params: WebSearchParams, context: RunContext) -> str:
    limit = int(params.limit) if params.limit is not None else 5
    results = [
        {"title": f'Result 1 for "{params.query}"', "snippet": "This is a mock search result...", "url": "https://example.com/1"},
        {"title": f'Result 2 for "{params.query}"', "snippet": "Another mock result with relevant information...", "url": "https://example.com/2"},
        {"title": f'Result 3 for "{params.query}"', "snippet": "More information about your query...", "url": "https://example.com/3"},
    ][: max(limit, 0)]
    return _pretty(results)


async def weather_fetch(params: WeatherParams, context: RunContext) -> str:
    temperature = random.randint(10, 39)
    condition = random.choice(["Sunny", "Cloudy", "Rainy", "Partly Cloudy"])
    humidity = random.randint(40, 79)
    wind_speed = random.randint(5, 24)
    return (
        f"Weather in {params.location}: {temperature}°C, {condition}, "
        f"Humidity: {humidity}%, Wind: {wind_speed} km/h"
    )


async def json_parser(params: JsonParserParams, context: RunContext) -> str:
    try:
        parsed = json.loads(params.json_text)
    except json.JSONDecodeError as e:
        return f"Error parsing JSON: {e.msg}"

    if not params.path:
        return _pretty(parsed)

    result: Any = parsed
    for key in params.path.split("."):
        if isinstance(result, dict) and key in result:
            result = result[key]
        elif isinstance(result, list) and key.isdigit() and int(key) < len(result):
            result = result[int(key)]
        else:
            return f'Path "{params.path}" not found in JSON'
    return _pretty(result)


async def email_sender(params: EmailSenderParams, context: RunContext) -> str:
    logger.info(f"[Mock Email] To: {params.to}, Subject: {params.subject}")
    return f'Email sent successfully to {params.to} with subject "{params.subject}"'


async def data_query(params: DataQueryParams, context: RunContext) -> str:
    rows = [
        {"id": 1, "name": "John Doe", "email": "john@example.com"},
        {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
    ]
    database = params.database or "default"
    return f"Query executed on {database}: {params.query}\nResults: {_pretty(rows)}"


_TRANSLATION_PREFIXES = {
    "es": "[Traducción al español]",
    "fr": "[Traduction en français]",
    "de": "[Deutsche Übersetzung]",
    "ja": "[日本語訳]",
}


async def translator(params: TranslatorParams, context: RunContext) -> str:
    prefix = _TRANSLATION_PREFIXES.get(params.target_language)
    if prefix:
        return f"{prefix}: {params.text}"
    source = params.source_language or "auto"
    return f"[Translation to {params.target_language} from {source}]: {params.text}"


async def file_reader(params: FileReaderParams, context: RunContext) -> str:
    return (
        f"[Mock] Contents of {params.path}:\n"
        "This is mock file content.\nLine 2 of the file.\nLine 3 of the file."
    )


async def file_writer(params: FileWriterParams, context: RunContext) -> str:
    logger.info(f"[Mock Write] Writing {len(params.content)} characters to {params.path}")
    return f"Successfully wrote {len(params.content)} characters to {params.path}"


async def http_request(params: HttpRequestParams, context: RunContext) -> str:
    method = (params.method or "GET").upper()
    headers = {"Content-Type": "application/json", **(params.headers or {})}
    content = params.body if params.body and method != "GET" else None
    try:
        async with httpx.AsyncClient(timeout=settings.tools.http_timeout) as client:
            response = await client.request(method, params.url, headers=headers, content=content)
    except httpx.HTTPError as e:
        return f"Error making HTTP request: {e}"
    data = response.text
    suffix = "..." if len(data) > 500 else ""
    return f"Response ({response.status_code}): {data[:500]}{suffix}"


def _builtin(
    name: str,
    display_name: str,
    category: str,
    description: str,
    parameters: type[BaseModel],
    execute,
) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        display_name=display_name,
        category=category,
        description=description,
        parameters=parameters,
        execute=execute,
        is_builtin=True,
    )


BUILTIN_TOOLS: dict[str, ToolDefinition] = {
    tool.name: tool
    for tool in [
        _builtin("calculator", "Calculator", "utility", "Perform mathematical calculations", CalculatorParams, calculator),
        _builtin("webSearch", "Web Search", "search", "Search the web for information", WebSearchParams, web_search),
        _builtin("weatherFetch", "Weather", "data", "Get weather information", WeatherParams, weather_fetch),
        _builtin("jsonParser", "JSON Parser", "utility", "Parse and manipulate JSON data", JsonParserParams, json_parser),
        _builtin("emailSender", "Email Sender", "communication", "Send emails", EmailSenderParams, email_sender),
        _builtin("dataQuery", "Data Query", "data", "Query databases", DataQueryParams, data_query),
        _builtin("translator", "Translator", "language", "Translate text between languages", TranslatorParams, translator),
        _builtin("fileReader", "File Reader", "file", "Read content from files", FileReaderParams, file_reader),
        _builtin("fileWriter", "File Writer", "file", "Write content to files", FileWriterParams, file_writer),
        _builtin("httpRequest", "HTTP Request", "integration", "Make HTTP requests to external APIs", HttpRequestParams, http_request),
    ]
}


def get_builtin_tool(name: str) -> ToolDefinition | None:
    return BUILTIN_TOOLS.get(name)


def builtin_tool_records() -> list[Tool]:
    """Registry rows for the built-ins, as stored by ``agentforge seed``."""
    return [
        Tool(
            name=tool.name,
            display_name=tool.display_name,
            description=tool.description,
            category=tool.category,
            parameters=to_vendor_params(tool.parameters),
            is_builtin=True,
        )
        for tool in BUILTIN_TOOLS.values()
    ]
