import pytest

from cctp_bridger.core.errors import InvalidTransition
from cctp_bridger.core.session import TRANSITIONS, BridgeSession, BridgeState, can_transition


class TestTransitionTable:
    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == set(BridgeState)

    @pytest.mark.parametrize(
        "current,target",
        [
            (BridgeState.IDLE, BridgeState.APPROVING),
            (BridgeState.IDLE, BridgeState.BURNING),
            (BridgeState.APPROVING, BridgeState.IDLE),
            (BridgeState.BURNING, BridgeState.ATTESTING),
            (BridgeState.ATTESTING, BridgeState.MINTING),
            (BridgeState.MINTING, BridgeState.COMPLETED),
            (BridgeState.MINTING, BridgeState.ERROR),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (BridgeState.IDLE, BridgeState.MINTING),
            (BridgeState.BURNING, BridgeState.MINTING),
            (BridgeState.ATTESTING, BridgeState.IDLE),
            (BridgeState.COMPLETED, BridgeState.IDLE),
            (BridgeState.ERROR, BridgeState.BURNING),
        ],
    )
    def test_forbidden(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_states_have_no_exits(self):
        for state in BridgeState:
            assert state.terminal == (not TRANSITIONS[state])


class TestBridgeSession:
    def test_starts_idle(self, request_arb_to_base):
        session = BridgeSession(request_arb_to_base)
        assert session.state is BridgeState.IDLE
        assert not session.terminal
        assert len(session.session_id) == 32

    def test_invalid_transition_leaves_state(self, request_arb_to_base):
        session = BridgeSession(request_arb_to_base)
        with pytest.raises(InvalidTransition):
            session.transition(BridgeState.COMPLETED)
        assert session.state is BridgeState.IDLE

    def test_fail_records_step(self, request_arb_to_base):
        session = BridgeSession(request_arb_to_base)
        session.transition(BridgeState.BURNING)
        session.fail("burn", "reverted")

        assert session.state is BridgeState.ERROR
        assert session.terminal
        assert session.failed_step == "burn"
        assert session.error == "burn failed: reverted"

    def test_to_dict(self, request_arb_to_base):
        session = BridgeSession(request_arb_to_base)
        session.burn_tx_hash = "0xabc"

        payload = session.to_dict()

        assert payload["state"] == "idle"
        assert payload["burn_tx_hash"] == "0xabc"
        assert payload["message_hash"] is None
        assert payload["error"] is None
