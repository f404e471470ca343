import hashlib
import re

import httpx
import pytest
import respx

from conftest import IP_ECHO_URL
from pubkiosk.services.signing import PublicAddress, RequestSigner, SigningError, sign_request


def test_sign_request_matches_wire_format() -> None:
    digest = sign_request("http://xid.test/oclcnum/42", "192.0.2.7", "s3cret")

    expected = hashlib.md5(b"http://xid.test/oclcnum/42|192.0.2.7|s3cret").hexdigest()
    assert digest == expected
    assert re.fullmatch(r"[0-9a-f]{32}", digest)


def test_sign_request_known_vector() -> None:
    # md5("||") with every component empty
    assert sign_request("", "", "") == hashlib.md5(b"||").hexdigest()
    assert sign_request("", "", "") != hashlib.md5(b"").hexdigest()


@pytest.mark.asyncio
@respx.mock
async def test_public_address_is_fetched_once() -> None:
    route = respx.get(IP_ECHO_URL).mock(
        return_value=httpx.Response(200, json={"origin": "192.0.2.7"})
    )
    address = PublicAddress(IP_ECHO_URL)

    async with httpx.AsyncClient() as client:
        first = await address.get(client)
        second = await address.get(client)

    assert first == second == "192.0.2.7"
    assert address.cached == "192.0.2.7"
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_public_address_failure_raises_signing_error() -> None:
    respx.get(IP_ECHO_URL).mock(return_value=httpx.Response(503))
    address = PublicAddress(IP_ECHO_URL)

    async with httpx.AsyncClient() as client:
        with pytest.raises(SigningError):
            await address.get(client)

    assert address.cached is None


@pytest.mark.asyncio
@respx.mock
async def test_signer_builds_token_and_hash() -> None:
    respx.get(IP_ECHO_URL).mock(return_value=httpx.Response(200, json={"origin": "192.0.2.7"}))

    async with httpx.AsyncClient() as client:
        signer = RequestSigner(client, PublicAddress(IP_ECHO_URL), "tok", "s3cret")
        params = await signer.signed_params("http://xid.test/oclcnum/42")

    assert params == {
        "token": "tok",
        "hash": sign_request("http://xid.test/oclcnum/42", "192.0.2.7", "s3cret"),
    }


@pytest.mark.asyncio
async def test_signer_requires_credentials() -> None:
    async with httpx.AsyncClient() as client:
        signer = RequestSigner(client, PublicAddress(IP_ECHO_URL), None, None)
        with pytest.raises(SigningError):
            await signer.signed_params("http://xid.test/oclcnum/42")
