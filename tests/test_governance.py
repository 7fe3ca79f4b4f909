"""Tests for dotstarter.services.governance."""

import inspect

import pytest

from dotstarter.services.errors import (
    InvalidAmountError,
    InvalidRequestError,
    ProposalDecodeError,
    RPCError,
)
from dotstarter.services.governance import (
    GovernanceSchema,
    GovernanceService,
    SchemaResolver,
    normalize_current_referendum,
    normalize_legacy_referendum,
)
from dotstarter.services.schemas.chain import ProposalView
from tests.fakes import ALICE, BOB, FakeChain


def _ongoing_current(track: int = 1, who: str = ALICE, amount: object = 10_000_000_000, since: object = 100) -> dict:
    return {
        "Ongoing": {
            "track": track,
            "origin": {"Origins": "Treasurer"},
            "proposal": {"Lookup": {"hash": "0xabc", "len": 42}},
            "submission_deposit": {"who": who, "amount": amount},
            "decision_deposit": None,
            "deciding": {"since": since, "confirming": None} if since is not None else None,
            "tally": {"ayes": 0, "nays": 0, "support": 0},
        }
    }


def _ongoing_legacy(end: int = 500) -> dict:
    return {
        "Ongoing": {
            "end": end,
            "proposal": {"Lookup": {"hash": "0xdef", "len": 10}},
            "threshold": "SuperMajorityApprove",
            "delay": 28800,
            "tally": {"ayes": 0, "nays": 0, "turnout": 0},
        }
    }


def _current_chain(entries: dict) -> FakeChain:
    chain = FakeChain()
    chain.set_storage("Referenda", "ReferendumInfoFor", {(k,): v for k, v in entries.items()})
    return chain


def _legacy_chain(entries: dict) -> FakeChain:
    chain = FakeChain()
    chain.set_storage("Democracy", "ReferendumInfoOf", {(k,): v for k, v in entries.items()})
    return chain


class TestNormalize:
    def test_current_referendum(self) -> None:
        view: ProposalView | None = normalize_current_referendum(7, _ongoing_current(track=2), "0xkey")
        assert view == ProposalView(
            index=7,
            identifier_hash="0xkey",
            author=ALICE,
            deposit=10_000_000_000,
            status="Active",
            title="Track 2 - Referendum 7",
            description="OpenGov Referendum",
            voting_end_block=100,
        )

    def test_current_referendum_not_yet_deciding(self) -> None:
        view = normalize_current_referendum(7, _ongoing_current(since=None), "0xkey")
        assert view is not None
        assert view.voting_end_block is None

    def test_current_referendum_without_deposit_info(self) -> None:
        raw: dict = _ongoing_current()
        raw["Ongoing"]["submission_deposit"] = None
        view = normalize_current_referendum(7, raw, "0xkey")
        assert view is not None
        assert view.author == "Unknown"
        assert view.deposit == 0

    def test_legacy_referendum(self) -> None:
        view: ProposalView | None = normalize_legacy_referendum(3, _ongoing_legacy(end=900), "0xkey")
        assert view is not None
        assert view.author == "Democracy"
        assert view.deposit == 0
        assert view.title == "Democracy Referendum 3"
        assert view.description == "Legacy Democracy Referendum"
        assert view.voting_end_block == 900

    def test_finished_referendum_is_not_active(self) -> None:
        assert normalize_current_referendum(1, {"Approved": [10, None, None]}, "0xkey") is None
        assert normalize_legacy_referendum(1, {"Finished": {"approved": True, "end": 5}}, "0xkey") is None

    @pytest.mark.parametrize("raw", [None, 5, {"Ongoing": "garbage"}, {"a": 1, "b": 2}])
    def test_malformed_entries_raise(self, raw: object) -> None:
        with pytest.raises(ProposalDecodeError):
            normalize_current_referendum(1, raw, "0xkey")

    def test_bad_field_types_raise(self) -> None:
        with pytest.raises(ProposalDecodeError):
            normalize_current_referendum(1, _ongoing_current(amount="lots"), "0xkey")


class TestSchemaResolution:
    def test_current_wins_when_both_exist(self) -> None:
        chain: FakeChain = _current_chain({})
        chain.set_storage("Democracy", "ReferendumInfoOf", {(1,): _ongoing_legacy()})
        assert SchemaResolver(chain).resolve_schema() is GovernanceSchema.CURRENT

    def test_legacy_when_current_absent(self) -> None:
        assert SchemaResolver(_legacy_chain({})).resolve_schema() is GovernanceSchema.LEGACY

    def test_none_when_no_governance(self, chain: FakeChain) -> None:
        assert SchemaResolver(chain).resolve_schema() is None


class TestListActiveProposals:
    def test_current_schema(self) -> None:
        chain: FakeChain = _current_chain(
            {
                1: _ongoing_current(track=0),
                2: {"Approved": [10, None, None]},
                3: _ongoing_current(track=33, who=BOB),
            }
        )
        proposals: list[ProposalView] = SchemaResolver(chain).list_active_proposals()

        assert [p.index for p in proposals] == [1, 3]
        assert proposals[1].author == BOB
        assert proposals[1].title == "Track 33 - Referendum 3"
        assert proposals[1].identifier_hash == chain.storage_key("Referenda", "ReferendumInfoFor", [3])

    def test_legacy_only(self) -> None:
        chain: FakeChain = _legacy_chain({4: _ongoing_legacy(end=1200)})
        proposals: list[ProposalView] = SchemaResolver(chain).list_active_proposals()

        assert len(proposals) == 1
        assert proposals[0].author == "Democracy"
        assert proposals[0].deposit == 0
        assert proposals[0].voting_end_block == 1200

    def test_empty_current_map_does_not_fall_back(self) -> None:
        chain: FakeChain = _current_chain({})
        chain.set_storage("Democracy", "ReferendumInfoOf", {(1,): _ongoing_legacy()})

        assert SchemaResolver(chain).list_active_proposals() == []
        assert ("Democracy", "ReferendumInfoOf") not in chain.queried

    def test_no_governance_pallet(self, chain: FakeChain) -> None:
        assert SchemaResolver(chain).list_active_proposals() == []
        assert chain.queried == []

    def test_undecodable_entries_are_skipped(self) -> None:
        chain: FakeChain = _current_chain(
            {
                1: {"Ongoing": "garbage"},
                2: _ongoing_current(),
                "not-an-index": _ongoing_current(),
            }
        )
        proposals: list[ProposalView] = SchemaResolver(chain).list_active_proposals()
        assert [p.index for p in proposals] == [2]

    def test_every_listed_legacy_proposal_has_zero_deposit(self) -> None:
        chain: FakeChain = _legacy_chain({i: _ongoing_legacy(end=100 + i) for i in range(5)})
        proposals: list[ProposalView] = SchemaResolver(chain).list_active_proposals()

        assert len(proposals) == 5
        assert all(p.author == "Democracy" and p.deposit == 0 for p in proposals)

    def test_rpc_failure_yields_empty_list(self) -> None:
        chain: FakeChain = _current_chain({1: _ongoing_current()})
        chain.query_error = RPCError("boom")
        assert SchemaResolver(chain).list_active_proposals() == []

    def test_storage_key_failure_skips_only_that_entry(self) -> None:
        chain: FakeChain = _current_chain({1: _ongoing_current(), 2: _ongoing_current(), 3: _ongoing_current()})
        chain.storage_key_errors[2] = RPCError("Referenda.ReferendumInfoFor key hashing failed")

        proposals: list[ProposalView] = SchemaResolver(chain).list_active_proposals()
        assert [p.index for p in proposals] == [1, 3]

    def test_iteration_is_lazy(self) -> None:
        chain: FakeChain = _current_chain({1: _ongoing_current()})
        proposals = SchemaResolver(chain).iter_active_proposals()

        assert inspect.isgenerator(proposals)
        assert chain.queried == []
        assert next(proposals).index == 1


class TestReferendumDetails:
    def test_current_schema(self) -> None:
        chain: FakeChain = _current_chain({5: _ongoing_current(track=11)})
        view: ProposalView | None = SchemaResolver(chain).get_referendum_details(5)

        assert view is not None
        assert view.title == "Track 11 - Referendum 5"
        assert view.identifier_hash == chain.storage_key("Referenda", "ReferendumInfoFor", [5])

    def test_missing_index(self) -> None:
        assert SchemaResolver(_current_chain({})).get_referendum_details(5) is None

    def test_finished(self) -> None:
        chain: FakeChain = _current_chain({5: {"Rejected": [10, None, None]}})
        assert SchemaResolver(chain).get_referendum_details(5) is None

    def test_legacy_only(self) -> None:
        view = SchemaResolver(_legacy_chain({5: _ongoing_legacy()})).get_referendum_details(5)
        assert view is not None
        assert view.author == "Democracy"

    def test_legacy_not_consulted_when_current_present(self) -> None:
        chain: FakeChain = _current_chain({})
        chain.set_storage("Democracy", "ReferendumInfoOf", {(5,): _ongoing_legacy()})

        assert SchemaResolver(chain).get_referendum_details(5) is None
        assert ("Democracy", "ReferendumInfoOf") not in chain.queried

    def test_undecodable(self) -> None:
        chain: FakeChain = _current_chain({5: {"Ongoing": "garbage"}})
        assert SchemaResolver(chain).get_referendum_details(5) is None

    def test_no_governance(self, chain: FakeChain) -> None:
        assert SchemaResolver(chain).get_referendum_details(5) is None


class TestVotingAndTreasury:
    def test_conviction_voting(self, chain: FakeChain) -> None:
        record: dict = {"Casting": {"votes": [], "delegations": {}, "prior": [0, 0]}}
        chain.set_storage("ConvictionVoting", "VotingFor", {(ALICE, 2): record})
        assert SchemaResolver(chain).get_voting_info(ALICE, track=2) == record

    def test_democracy_voting(self, chain: FakeChain) -> None:
        record: dict = {"Direct": {"votes": [], "delegations": {}, "prior": [0, 0]}}
        chain.set_storage("Democracy", "VotingOf", {(ALICE,): record})
        assert SchemaResolver(chain).get_voting_info(ALICE) == record

    def test_no_voting_pallet(self, chain: FakeChain) -> None:
        assert SchemaResolver(chain).get_voting_info(ALICE) is None

    def test_treasury_proposals(self, chain: FakeChain) -> None:
        proposal: dict = {"proposer": ALICE, "value": 100, "beneficiary": BOB, "bond": 5}
        chain.set_storage("Treasury", "Proposals", {(0,): proposal})
        assert SchemaResolver(chain).get_treasury_proposals() == [{"index": 0, "proposal": proposal}]

    def test_treasury_absent(self, chain: FakeChain) -> None:
        assert SchemaResolver(chain).get_treasury_proposals() == []


class TestRequestBuilders:
    def test_conviction_vote(self, chain: FakeChain) -> None:
        chain.calls.add(("ConvictionVoting", "vote"))
        request = GovernanceService(chain, decimals=10).build_vote_request(ALICE, 12, "aye", 3, 1.5)

        assert request.signer_address == ALICE
        assert request.call.pallet == "ConvictionVoting"
        assert request.call.method == "vote"
        assert request.call.args == {
            "poll_index": 12,
            "vote": {
                "Standard": {
                    "vote": {"aye": True, "conviction": "Locked3x"},
                    "balance": 15_000_000_000,
                }
            },
        }

    def test_democracy_vote(self, chain: FakeChain) -> None:
        request = GovernanceService(chain, decimals=10).build_vote_request(ALICE, 4, "nay", 0, "500")

        assert request.call.pallet == "Democracy"
        assert request.call.args["ref_index"] == 4
        assert request.call.args["vote"] == {
            "Standard": {"vote": {"aye": False, "conviction": "None"}, "balance": 500}
        }

    @pytest.mark.parametrize(("vote", "conviction"), [("maybe", 1), ("aye", 7), ("aye", -1), ("nay", True)])
    def test_invalid_vote(self, chain: FakeChain, vote: str, conviction: int) -> None:
        with pytest.raises(InvalidRequestError):
            GovernanceService(chain, decimals=10).build_vote_request(ALICE, 1, vote, conviction, 1)

    def test_negative_vote_balance(self, chain: FakeChain) -> None:
        with pytest.raises(InvalidAmountError):
            GovernanceService(chain, decimals=10).build_vote_request(ALICE, 1, "aye", 1, -1)

    def test_treasury_proposal(self, chain: FakeChain) -> None:
        request = GovernanceService(chain, decimals=12).build_treasury_proposal_request(ALICE, 2, BOB)

        assert request.call.pallet == "Treasury"
        assert request.call.method == "propose_spend"
        assert request.call.args == {"value": 2_000_000_000_000, "beneficiary": BOB}
