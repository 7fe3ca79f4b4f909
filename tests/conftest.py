"""Shared fixtures: in-memory chain, metadata registry and signer."""

import pytest

from tests.fakes import INSUFFICIENT_BALANCE, FakeChain, FakeChainClient, FakeRegistry, FakeSigner


@pytest.fixture()
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def registry() -> FakeRegistry:
    return FakeRegistry({(5, 2): INSUFFICIENT_BALANCE})


@pytest.fixture()
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture()
def chain_client() -> FakeChainClient:
    client = FakeChainClient()
    client.registry.errors[(5, 2)] = INSUFFICIENT_BALANCE
    return client
