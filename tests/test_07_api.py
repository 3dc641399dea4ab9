"""
API Test Suite
==============
Tests for:
  - Health and root endpoints
  - POST /evaluate (output, responses, 422 error bodies)
  - Macro introspection
  - Command CRUD, run and message dispatch
"""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio

API = "/api/v1"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. Service
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestService:
    async def test_health(self, client):
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}

    async def test_root(self, client):
        r = await client.get("/")
        assert r.status_code == 200
        assert r.json()["name"] == "CharmScript"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. Evaluation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestEvaluate:
    async def test_plain_output(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "sum: $math[add, 2, 3]"})
        assert r.status_code == 200
        assert r.json() == {"output": "sum: 5", "responses": []}

    async def test_raw_value_output(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "$math[add, 2, 3]"})
        assert r.json()["output"] == 5

    async def test_args_and_responses(self, client):
        r = await client.post(
            f"{API}/evaluate",
            json={"code": "$say[Hi $$1]$say[$$*]", "args": ["Ana", "Bo"]},
        )
        body = r.json()
        assert body["output"] == ""
        assert body["responses"] == ["Hi Ana", "Ana Bo"]

    async def test_bindings(self, client):
        r = await client.post(
            f"{API}/evaluate",
            json={"code": "$if[$$user.vip; gold; plain]", "bindings": {"user": {"vip": True}}},
        )
        assert r.json()["output"] == "gold"

    async def test_variables_persist_between_requests(self, client):
        await client.post(f"{API}/evaluate", json={"code": "$data[set; coins; 10]"})
        await client.post(f"{API}/evaluate", json={"code": "$data[add; coins; 5]"})
        r = await client.post(f"{API}/evaluate", json={"code": "$data[get; coins]"})
        assert r.json()["output"] == 15

    async def test_unknown_macro(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "hi $nope[]"})
        assert r.status_code == 422
        detail = r.json()["detail"]
        assert detail["kind"] == "UnknownMacroError"
        assert detail["macro"] == "nope"

    async def test_syntax_error(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "$say[unterminated"})
        assert r.status_code == 422
        detail = r.json()["detail"]
        assert detail["kind"] == "MacroSyntaxError"
        assert detail["offset"] == 0

    async def test_runtime_error(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "$math[div, 1, 0]"})
        assert r.status_code == 422
        detail = r.json()["detail"]
        assert detail["kind"] == "MacroRuntimeError"
        assert detail["macro"] == "math"
        assert detail["error_kind"] == "ZeroDivisionError"
        assert detail["source_fragment"] == "$math[div, 1, 0]"

    async def test_control_flow_error(self, client):
        r = await client.post(f"{API}/evaluate", json={"code": "$break[]"})
        assert r.status_code == 422
        assert r.json()["detail"]["kind"] == "InvalidControlFlowError"

    async def test_missing_code(self, client):
        r = await client.post(f"{API}/evaluate", json={})
        assert r.status_code == 422


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. Macro introspection
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestMacros:
    async def test_list(self, client):
        r = await client.get(f"{API}/macros")
        assert r.status_code == 200
        names = [m["name"] for m in r.json()]
        for expected in ("if", "loop", "while", "try", "throw", "switch", "data", "say", "math"):
            assert expected in names
        assert names == sorted(names)

    async def test_describe(self, client):
        r = await client.get(f"{API}/macros/if")
        assert r.status_code == 200
        info = r.json()
        assert info["tiers"] == [1]
        kinds = {p["name"]: p["kind"] for p in info["params"]}
        assert kinds == {"condition": "value", "then": "code", "else": "code"}

    async def test_unknown(self, client):
        r = await client.get(f"{API}/macros/nope")
        assert r.status_code == 404


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 4. Commands and messages
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestCommands:
    async def create(self, client, **fields):
        payload = {"name": "greet", "code": "$say[Hello $$1]", "aliases": ["hi"]}
        payload.update(fields)
        return await client.post(f"{API}/commands", json=payload)

    async def test_create_and_get(self, client):
        r = await self.create(client, name="Greet")
        assert r.status_code == 201
        assert r.json()["name"] == "greet"

        r = await client.get(f"{API}/commands/hi")
        assert r.status_code == 200
        assert r.json()["code"] == "$say[Hello $$1]"

    async def test_list(self, client):
        await self.create(client)
        r = await client.get(f"{API}/commands")
        assert [c["name"] for c in r.json()] == ["greet"]

    async def test_invalid_name(self, client):
        r = await self.create(client, name="no spaces")
        assert r.status_code == 422

    async def test_run(self, client):
        await self.create(client)
        r = await client.post(f"{API}/commands/greet/run", json={"args": ["Ana"]})
        assert r.status_code == 200
        assert r.json() == {"command": "greet", "output": None, "responses": ["Hello Ana"]}

    async def test_run_without_body(self, client):
        await self.create(client, name="count", code="$data[inc; runs]", aliases=[])
        r = await client.post(f"{API}/commands/count/run")
        assert r.status_code == 200
        assert r.json()["output"] == 1

    async def test_run_unknown(self, client):
        r = await client.post(f"{API}/commands/nope/run", json={"args": []})
        assert r.status_code == 404

    async def test_delete(self, client):
        await self.create(client)
        r = await client.delete(f"{API}/commands/greet")
        assert r.status_code == 200
        assert r.json()["ok"] is True

        assert (await client.get(f"{API}/commands/greet")).status_code == 404
        assert (await client.delete(f"{API}/commands/greet")).status_code == 404

    async def test_message_handled(self, client):
        await self.create(client)
        r = await client.post(f"{API}/messages", json={"content": "!hi Ana"})
        body = r.json()
        assert body["handled"] is True
        assert body["result"]["responses"] == ["Hello Ana"]

    async def test_message_ignored(self, client):
        r = await client.post(f"{API}/messages", json={"content": "just chatting"})
        assert r.json() == {"handled": False, "result": None}

    async def test_command_error_is_422(self, client):
        await self.create(client, name="oops", code="$nope[]", aliases=[])
        r = await client.post(f"{API}/commands/oops/run")
        assert r.status_code == 422
        assert r.json()["detail"]["macro"] == "nope"
