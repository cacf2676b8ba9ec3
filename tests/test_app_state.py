from launchgate.gate.state.app_state import AppState, GateState
from launchgate.shared.core import events


def test_initial_state(event_bus):
    state = GateState(event_bus)

    assert state.app_state is AppState.LAUNCH_LOADING
    assert state.snapshot() == {
        "app_state": "launch_loading",
        "is_verifying_subscription": False,
        "has_completed_initial_gate": False,
    }


def test_set_app_state_records_transition_and_notifies(event_bus):
    state = GateState(event_bus)
    seen = []
    state.add_observer(lambda previous, current: seen.append((previous, current)))

    assert state.set_app_state(AppState.SIGN_IN)
    assert not state.set_app_state(AppState.SIGN_IN)

    assert state.transitions == [(AppState.LAUNCH_LOADING, AppState.SIGN_IN)]
    assert seen == state.transitions


def test_failing_observer_does_not_block_others(event_bus):
    state = GateState(event_bus)
    seen = []

    def broken(previous, current):
        raise RuntimeError("observer failed")

    state.add_observer(broken)
    state.add_observer(lambda previous, current: seen.append(current))
    state.set_app_state(AppState.PAYWALL)

    assert state.app_state is AppState.PAYWALL
    assert seen == [AppState.PAYWALL]


def test_removed_observer_is_not_called(event_bus):
    state = GateState(event_bus)
    seen = []

    def observer(previous, current):
        seen.append(current)

    state.add_observer(observer)
    state.remove_observer(observer)
    state.set_app_state(AppState.MAIN_TABS)

    assert seen == []


async def test_changes_are_published(event_bus):
    changes, statuses = [], []

    async def on_change(payload):
        changes.append((payload["previous"], payload["current"]))

    async def on_status(payload):
        statuses.append(payload)

    await event_bus.subscribe(events.TOPIC_APP_STATE_CHANGED, on_change)
    await event_bus.subscribe(events.TOPIC_GATE_STATUS, on_status)

    state = GateState(event_bus)
    state.set_app_state(AppState.VALUE_SCREENS)
    state.set_verifying_subscription(True)
    state.set_verifying_subscription(True)
    state.set_completed_initial_gate(True)
    await event_bus.wait_until_idle()

    assert changes == [("launch_loading", "value_screens")]
    assert len(statuses) == 2
    assert statuses[-1]["is_verifying_subscription"] is True
    assert statuses[-1]["has_completed_initial_gate"] is True
