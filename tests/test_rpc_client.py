"""Tests for SolanaRpcClient using httpx.MockTransport (no network)."""

from __future__ import annotations

import base64
import json

import httpx
import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from sol_sender.core.exceptions import AccountLookupFailed, RpcError
from sol_sender.core.resolver import AccountResolver
from sol_sender.rpc.client import SolanaRpcClient

RPC_URL = "https://rpc.test"


def _client(handler) -> SolanaRpcClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaRpcClient(RPC_URL, client=http)


def _ok(result):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


@pytest.mark.asyncio
async def test_get_balance_sends_json_rpc_request():
    seen = []
    address = Pubkey.new_unique()

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 1}, "value": 42}})

    assert await _client(handler).get_balance(address) == 42
    assert seen[0]["method"] == "getBalance"
    assert seen[0]["params"][0] == str(address)
    assert seen[0]["jsonrpc"] == "2.0"


@pytest.mark.asyncio
async def test_request_ids_increase():
    ids = []

    def handler(request: httpx.Request) -> httpx.Response:
        ids.append(json.loads(request.content)["id"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": ids[-1], "result": {"value": 0}})

    client = _client(handler)
    await client.get_balance(Pubkey.new_unique())
    await client.get_balance(Pubkey.new_unique())
    assert ids == [1, 2]


@pytest.mark.asyncio
async def test_get_account_info_absent_is_none():
    client = _client(_ok({"context": {"slot": 1}, "value": None}))
    assert await client.get_account_info(Pubkey.new_unique()) is None


@pytest.mark.asyncio
async def test_get_account_info_present():
    value = {"lamports": 2039280, "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA", "data": ["", "base64"]}
    client = _client(_ok({"context": {"slot": 1}, "value": value}))
    assert await client.get_account_info(Pubkey.new_unique()) == value


@pytest.mark.asyncio
async def test_get_latest_blockhash():
    blockhash = Hash.new_unique()
    client = _client(_ok({"context": {"slot": 1}, "value": {"blockhash": str(blockhash), "lastValidBlockHeight": 300}}))
    latest = await client.get_latest_blockhash()
    assert latest.blockhash == blockhash
    assert latest.last_valid_block_height == 300


@pytest.mark.asyncio
async def test_send_transaction_base64_encodes_wire():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "5sig"})

    assert await _client(handler).send_transaction(b"\x01\x02\x03") == "5sig"
    params = seen[0]["params"]
    assert base64.b64decode(params[0]) == b"\x01\x02\x03"
    assert params[1]["encoding"] == "base64"


@pytest.mark.asyncio
async def test_signature_status_parsing():
    item = {"slot": 7, "confirmations": None, "err": None, "confirmationStatus": "finalized"}
    st = await _client(_ok({"context": {"slot": 8}, "value": [item]})).get_signature_status("5sig")
    assert st.slot == 7
    assert st.confirmations is None
    assert st.confirmation_status == "finalized"

    assert await _client(_ok({"context": {"slot": 8}, "value": [None]})).get_signature_status("5sig") is None


@pytest.mark.asyncio
async def test_rpc_error_object_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32002, "message": "Blockhash not found"}}
        )

    with pytest.raises(RpcError) as exc:
        await _client(handler).send_transaction(b"\x00")
    assert exc.value.rpc_code == -32002
    assert exc.value.method == "sendTransaction"
    assert "Blockhash not found" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("error", ["boom", ["x"], 42, None])
async def test_non_object_error_member_raises_rpc_error(error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": error})

    with pytest.raises(RpcError) as exc:
        await _client(handler).get_balance(Pubkey.new_unique())
    assert exc.value.rpc_code is None


@pytest.mark.asyncio
async def test_string_error_member_becomes_account_lookup_failure():
    client = _client(lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": "boom"}))
    with pytest.raises(AccountLookupFailed):
        await AccountResolver(client).resolve(Pubkey.new_unique(), Pubkey.new_unique())


@pytest.mark.asyncio
async def test_http_status_error_raises():
    client = _client(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(RpcError):
        await client.get_balance(Pubkey.new_unique())


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RpcError):
        await _client(handler).get_account_info(Pubkey.new_unique())


@pytest.mark.asyncio
async def test_non_json_response_raises():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(RpcError):
        await client.get_latest_blockhash()


@pytest.mark.asyncio
async def test_malformed_result_raises():
    with pytest.raises(RpcError):
        await _client(_ok({"value": "lots"})).get_balance(Pubkey.new_unique())


@pytest.mark.asyncio
async def test_shared_client_left_open():
    http = httpx.AsyncClient(transport=httpx.MockTransport(_ok({"value": 0})))
    async with SolanaRpcClient(RPC_URL, client=http) as client:
        await client.get_balance(Pubkey.new_unique())
    assert not http.is_closed
    await http.aclose()


def test_empty_url_rejected():
    with pytest.raises(ValueError):
        SolanaRpcClient("  ")
