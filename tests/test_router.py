import pytest
from web3 import Web3

from errors import SwapExecutionError
from router import KuruRouter, min_amount_out

from conftest import NATIVE, TOKEN_A, FakeContract, FakeSigner, FakeW3, route_for

ROUTER = "0xc816865f172d640d93712C68a7E1F83F3fA63235"
SWAP_RECEIPT = {"status": 1, "transactionHash": bytes.fromhex("aa" * 32), "gasUsed": 21000}
APPROVAL_RECEIPT = {"status": 1, "transactionHash": bytes.fromhex("cc" * 32)}


def make_signer(receipts):
    w3 = FakeW3({
        ROUTER: FakeContract({"anyToAnySwap": "swap"}),
        TOKEN_A: FakeContract({"approve": "approve"}),
    })
    return FakeSigner(w3, receipts=receipts)


def test_min_amount_out_applies_slippage():
    assert min_amount_out(100, 0.5, 6) == "99500000"


@pytest.mark.parametrize("output, raw", [
    (10**10, str(9_950_000_000 * 10**18)),
    (2 * 10**11, str(199_000_000_000 * 10**18)),
    (5 * 10**12, str(4_975_000_000_000 * 10**18)),
    ("123456789012345678.123456789012345678", "122839505067283949732839505067283949"),
])
def test_min_amount_out_keeps_large_outputs_exact(output, raw):
    assert min_amount_out(output, 0.5, 18) == raw


def test_min_amount_out_truncates_to_token_precision():
    assert min_amount_out("1.23456789", 0.5, 2) == "122"


@pytest.mark.asyncio
async def test_native_swap_sends_value_without_approval():
    signer = make_signer([SWAP_RECEIPT])
    route = route_for(NATIVE, TOKEN_A, output=10, native_send=True)

    receipt = await KuruRouter().swap(signer, ROUTER, route, 2, 18, 6, 0.5, False)

    assert receipt is SWAP_RECEIPT
    assert len(signer.sent) == 1
    call, value = signer.sent[0]
    assert call.name == "anyToAnySwap"
    assert value == 2 * 10**18
    markets, is_buy, native_send, debit, credit, amount, minimum = call.args
    assert markets == [Web3.to_checksum_address("0x" + "ef" * 20)]
    assert is_buy == [False]
    assert native_send == [True]
    assert debit == NATIVE
    assert credit == Web3.to_checksum_address(TOKEN_A)
    assert amount == 2 * 10**18
    assert minimum == 9_950_000


@pytest.mark.asyncio
async def test_erc20_swap_approves_router_first():
    signer = make_signer([APPROVAL_RECEIPT, SWAP_RECEIPT])
    route = route_for(TOKEN_A, NATIVE, output=1)
    approvals = []

    await KuruRouter().swap(signer, ROUTER, route, 5, 6, 18, 0.5, True, approvals.append)

    (approve_call, approve_value), (swap_call, swap_value) = signer.sent
    assert approve_call.name == "approve"
    assert approve_call.args == (Web3.to_checksum_address(ROUTER), 5_000_000)
    assert approve_value == 0
    assert swap_call.name == "anyToAnySwap"
    assert swap_value == 0
    assert approvals == ["0x" + "cc" * 32]


@pytest.mark.asyncio
async def test_reverted_approval_stops_swap():
    signer = make_signer([{"status": 0, "transactionHash": bytes.fromhex("cc" * 32)}])

    with pytest.raises(SwapExecutionError, match="Approval"):
        await KuruRouter().swap(signer, ROUTER, route_for(TOKEN_A, NATIVE), 5, 6, 18, 0.5, True)

    assert len(signer.sent) == 1


@pytest.mark.asyncio
async def test_route_without_swap_data_is_rejected():
    signer = make_signer([SWAP_RECEIPT])

    with pytest.raises(SwapExecutionError, match="Route is missing swap data"):
        await KuruRouter().swap(signer, ROUTER, {"output": 1}, 5, 6, 18, 0.5, False)

    assert signer.sent == []
