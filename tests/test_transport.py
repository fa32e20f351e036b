"""Tests for the MCP dispatcher and its HTTP and stdio transports."""

import asyncio
import io
import json
import os

import pytest
from fastapi.testclient import TestClient

from policy_server import server
from policy_server.engine.core.errors import InvalidParamsError, SectionNotFoundError
from policy_server.mcp.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    error_code_for,
)
from policy_server.mcp.stdio import serve_stdio
from policy_server.mcp.transport import PROTOCOL_VERSION, handle_payload, handle_raw_message
from policy_server.policy_engine import PolicyEngine
from policy_server.server import create_app


def call(engine, payload):
    return asyncio.run(handle_payload(payload, engine))


def tool_call(id, name, arguments):
    return {
        "jsonrpc": "2.0",
        "id": id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


class TestErrorCodes:
    def test_mapping(self) -> None:
        assert error_code_for(InvalidParamsError("bad")) == INVALID_PARAMS
        assert error_code_for(SectionNotFoundError("§A.1")) == SERVER_ERROR
        assert error_code_for(RuntimeError("boom")) == INTERNAL_ERROR


class TestDispatcher:
    def test_initialize(self, sample_engine) -> None:
        response = call(sample_engine, {"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == PROTOCOL_VERSION
        assert result["serverInfo"]["name"] == "policy-server"
        assert "fetch_policies" in result["instructions"]

    def test_ping(self, sample_engine) -> None:
        response = call(sample_engine, {"jsonrpc": "2.0", "id": "p", "method": "ping"})
        assert response == {"jsonrpc": "2.0", "id": "p", "result": {}}

    def test_tools_list(self, sample_engine) -> None:
        response = call(sample_engine, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
        names = [tool["name"] for tool in response["result"]["tools"]]
        assert names[0] == "fetch_policies"
        assert {"extract_references", "validate_references", "list_sections"} <= set(names)

    def test_tools_call(self, sample_engine) -> None:
        response = call(sample_engine, tool_call(3, "fetch_policies", {"sections": ["§APP.7"]}))
        result = response["result"]
        text = result["content"][0]["text"]
        assert "{§APP.7}" in text
        assert "{§META.1}" in text
        assert "{§SYS.2}" in text
        assert len(result["content"]) == 1
        assert result["structuredContent"]["has_more"] is False

    def test_tools_call_domain_error(self, sample_engine) -> None:
        response = call(sample_engine, tool_call(4, "fetch_policies", {"sections": ["§APP.42"]}))
        error = response["error"]
        assert error["code"] == SERVER_ERROR
        assert "§APP.42" in error["message"]
        assert error["data"]["type"] == "SectionNotFoundError"

    def test_tools_call_invalid_params(self, sample_engine) -> None:
        response = call(sample_engine, tool_call(5, "fetch_policies", {}))
        assert response["error"]["code"] == INVALID_PARAMS

    def test_tools_call_unknown_tool(self, sample_engine) -> None:
        response = call(sample_engine, tool_call(6, "nope", {}))
        assert response["error"]["code"] == INVALID_PARAMS

    def test_tools_call_missing_name(self, sample_engine) -> None:
        response = call(
            sample_engine, {"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {}}
        )
        assert response["error"]["code"] == INVALID_PARAMS

    def test_unknown_method(self, sample_engine) -> None:
        response = call(sample_engine, {"jsonrpc": "2.0", "id": 8, "method": "resources/list"})
        assert response["error"]["code"] == METHOD_NOT_FOUND

    def test_notification_has_no_response(self, sample_engine) -> None:
        payload = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert call(sample_engine, payload) is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": 1, "method": "ping"},
            {"jsonrpc": "1.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "id": 1},
            "ping",
            [],
        ],
    )
    def test_invalid_request(self, sample_engine, payload) -> None:
        assert call(sample_engine, payload)["error"]["code"] == INVALID_REQUEST

    def test_non_object_params(self, sample_engine) -> None:
        payload = {"jsonrpc": "2.0", "id": 9, "method": "tools/list", "params": [1]}
        assert call(sample_engine, payload)["error"]["code"] == INVALID_PARAMS

    def test_batch(self, sample_engine) -> None:
        responses = call(
            sample_engine,
            [
                {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
            ],
        )
        assert [r["id"] for r in responses] == [1, 2]

    def test_batch_of_notifications(self, sample_engine) -> None:
        payload = [{"jsonrpc": "2.0", "method": "notifications/initialized"}]
        assert call(sample_engine, payload) is None

    def test_parse_error(self, sample_engine) -> None:
        response = asyncio.run(handle_raw_message("{not json", sample_engine))
        assert response["id"] is None
        assert response["error"]["code"] == PARSE_ERROR

    def test_prompts(self, sample_engine) -> None:
        listed = call(sample_engine, {"jsonrpc": "2.0", "id": 1, "method": "prompts/list"})
        assert listed["result"]["prompts"][0]["name"] == "auto-fetch"

        response = call(
            sample_engine,
            {"jsonrpc": "2.0", "id": 2, "method": "prompts/get", "params": {"name": "auto-fetch"}},
        )
        text = response["result"]["messages"][0]["content"]["text"]
        assert "**§APP.N**" in text
        assert "sample-policies/policy-app-hooks.md" in text

    def test_prompt_reflects_rebuilt_index(self, make_config, tmp_path) -> None:
        config = make_config({"a.md": "## {§A.1} One\n", "b.md": "# Notes\n"})
        engine = PolicyEngine.create(config, watch=False)
        try:
            path = tmp_path / "b.md"
            path.write_text("## {§NEW.1} Added\n", encoding="utf-8")
            os.utime(path, ns=(0, engine.state.index.file_mtimes[str(path)] + 1_000_000))
            engine.state.mark_stale()

            response = call(
                engine,
                {"jsonrpc": "2.0", "id": 1, "method": "prompts/get", "params": {"name": "auto-fetch"}},
            )
        finally:
            engine.close()

        text = response["result"]["messages"][0]["content"]["text"]
        assert "**§NEW.N**" in text
        assert engine.state.stale is False

    def test_unknown_prompt(self, sample_engine) -> None:
        response = call(
            sample_engine,
            {"jsonrpc": "2.0", "id": 3, "method": "prompts/get", "params": {"name": "other"}},
        )
        assert response["error"]["code"] == INVALID_PARAMS


class TestChunkedToolCall:
    def test_notice_is_separate_content_block(self, make_config) -> None:
        files = {
            "big.md": "\n".join(f"## {{§BIG.{i}}} Part {i}\n\n{'z' * 400}\n" for i in range(1, 6))
        }
        engine = PolicyEngine.create(make_config(files, max_chunk_tokens=150), watch=False)
        try:
            response = call(engine, tool_call(1, "fetch_policies", {"sections": ["§BIG.1-5"]}))
        finally:
            engine.close()

        content = response["result"]["content"]
        assert len(content) == 2
        assert "{§BIG.1}" in content[0]["text"]
        assert 'continuation="chunk:1"' in content[1]["text"]


class TestHttpTransport:
    @pytest.fixture
    def client(self, sample_config):
        with TestClient(create_app(sample_config, watch=False)) as client:
            yield client

    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["files"] == 4
        assert data["sections"] > 0
        assert data["stale"] is False

    def test_root(self, client) -> None:
        assert client.get("/").json()["mcp"] == "/mcp"

    def test_rest_tool_call(self, client) -> None:
        response = client.post(
            "/v1/mcp", json={"tool": "resolve_references", "params": {"sections": ["§SYS.1"]}}
        )
        data = response.json()
        assert data["success"] is True
        assert data["result"]["locations"] == {"sample-policies/policy-sys.md": ["§SYS.1", "§SYS.2"]}
        assert data["usage"]["output_tokens"] > 0

    def test_rest_tool_error(self, client) -> None:
        response = client.post(
            "/v1/mcp", json={"tool": "fetch_policies", "params": {"sections": ["§NOPE.1"]}}
        )
        data = response.json()
        assert data["success"] is False
        assert "Unknown prefix: NOPE" in data["error"]

    def test_jsonrpc_endpoint(self, client) -> None:
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert response.status_code == 200
        assert response.json()["result"] == {}

    def test_jsonrpc_notification_accepted(self, client) -> None:
        response = client.post(
            "/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response.status_code == 202

    def test_jsonrpc_parse_error(self, client) -> None:
        response = client.post(
            "/mcp", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == PARSE_ERROR


class TestStdioTransport:
    def test_one_response_line_per_request(self, sample_engine) -> None:
        requests = [
            {"jsonrpc": "2.0", "id": 1, "method": "initialize"},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            tool_call(2, "validate_references", {"references": ["§APP.7", "§APP.42"]}),
        ]
        instream = io.StringIO("\n".join(json.dumps(r) for r in requests) + "\n\nnot json\n")
        outstream = io.StringIO()

        asyncio.run(serve_stdio(sample_engine, instream, outstream))

        lines = outstream.getvalue().splitlines()
        assert len(lines) == 3
        init, validate, parse_error = (json.loads(line) for line in lines)
        assert init["id"] == 1
        assert validate["result"]["structuredContent"]["invalid"] == 1
        assert parse_error["error"]["code"] == PARSE_ERROR


class TestErrorTracking:
    def test_disabled_without_dsn(self, monkeypatch) -> None:
        monkeypatch.setattr(server.settings, "sentry_dsn", None)
        assert server.init_error_tracking() is False

    def test_enabled_with_dsn(self, monkeypatch) -> None:
        calls = []
        monkeypatch.setattr(server.settings, "sentry_dsn", "https://key@sentry.example.com/1")
        monkeypatch.setattr(server.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

        assert server.init_error_tracking() is True
        assert calls[0]["dsn"] == "https://key@sentry.example.com/1"
        assert calls[0]["environment"] == server.settings.environment
