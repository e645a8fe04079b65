import pytest

from context import build_context
from settings import load_settings
from wallet import WalletIdentity

from conftest import TEST_ENV


def test_build_context_wires_default_chain(settings):
    kuru_ctx = build_context(settings)

    assert kuru_ctx.chain.chain_id == 10143
    assert kuru_ctx.api.base_url == "http://kuru.test"
    assert kuru_ctx.http_client.timeout.read == 30.0
    assert kuru_ctx.wallet is None


def test_build_context_keeps_wallet(settings):
    wallet = WalletIdentity.from_private_key(TEST_ENV["PRIVATE_KEY"])

    assert build_context(settings, wallet=wallet).wallet is wallet


def test_build_context_rejects_unsupported_chain():
    with pytest.raises(Exception, match="Unsupported chain ID: 1"):
        build_context(load_settings({**TEST_ENV, "CHAIN_ID": "1"}))


@pytest.mark.asyncio
async def test_aclose_closes_http_client(settings):
    kuru_ctx = build_context(settings)

    await kuru_ctx.aclose()

    assert kuru_ctx.http_client.is_closed
