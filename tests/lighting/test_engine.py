"""Tests for the lighting engine state machine."""

from datetime import datetime, timedelta

import pytest

from home_lighting.lighting import (
    ControlState,
    EngineResult,
    LightingConfig,
    LightingEngine,
    classify,
)

EVENING = datetime(2025, 12, 20, 19, 0)
NOON = datetime(2025, 12, 20, 12, 0)
LATE = datetime(2025, 12, 20, 23, 30)


def apply(engine: LightingEngine, now: datetime, *messages) -> EngineResult:
    """Classify and apply (topic, payload) messages in order."""
    result = EngineResult()
    for topic, payload in messages:
        update = classify(topic, payload)
        assert update is not None, f"{topic}={payload} did not classify"
        result.extend(engine.handle_update(update, now))
    return result


def published(result: EngineResult) -> list[tuple[str, str]]:
    return [(p.topic, p.payload) for p in result.publishes]


@pytest.fixture
def engine():
    return LightingEngine()


@pytest.fixture
def porch(engine):
    """Enabled engine with region porch lit 17:00-23:00, devices a and b."""
    apply(
        engine,
        NOON,
        ("lighting/enable", "true"),
        ("lighting/porch/window-start", "17:00"),
        ("lighting/porch/window-end", "23:00"),
        ("lighting/porch/devices", "a,b"),
    )
    return engine


# =============================================================================
# Updates
# =============================================================================


class TestRegionUpdates:
    """Tests for region property updates."""

    def test_new_region_publishes_auto_control(self, engine):
        result = apply(engine, NOON, ("lighting/porch/window-start", "17:00"))

        assert published(result) == [("lighting/porch/control", "auto")]
        region = engine.get_region("porch")
        assert region.control is ControlState.AUTO
        assert region.window_start == "17:00"

    def test_new_region_from_control_echo_publishes_nothing(self, engine):
        result = apply(engine, NOON, ("lighting/porch/control", "manual-o"))

        assert published(result) == []
        assert engine.get_region("porch").control is ControlState.MANUAL_OUT

    def test_malformed_control_becomes_auto(self, engine):
        apply(engine, NOON, ("lighting/porch/control", "manual-i"))
        apply(engine, NOON, ("lighting/porch/control", "banana"))

        assert engine.get_region("porch").control is ControlState.AUTO

    def test_device_list_reports_discoveries(self, engine):
        result = apply(engine, NOON, ("lighting/porch/devices", "a,b"))

        assert result.discovered == [("a", "porch"), ("b", "porch")]

    def test_device_list_replacement(self, porch):
        result = apply(porch, NOON, ("lighting/porch/devices", "b,c"))

        assert result.discovered == [("c", "porch")]
        assert result.removed == [("a", "porch")]
        assert "a" not in porch.registry
        assert porch.registry.get("b").region == "porch"
        assert porch.registry.get("c").region == "porch"

    def test_light_level(self, engine):
        apply(engine, NOON, ("environment/outdoor-light", "6"))
        assert engine.light_level == 6

    def test_updates_for_unknown_devices_are_noops(self, engine):
        result = apply(
            engine,
            NOON,
            ("devices/ghost/outlet/on", "true"),
            ("devices/ghost/button/button", "true"),
        )

        assert published(result) == []
        assert len(engine.registry) == 0

    def test_global_enable(self, engine):
        assert engine.enabled is False
        apply(engine, NOON, ("lighting/enable", "true"))
        assert engine.enabled is True
        apply(engine, NOON, ("lighting/enable", "false"))
        assert engine.enabled is False


class TestDropRegion:
    """Tests for the drop command."""

    def test_drop_erases_region(self, porch):
        porch.reconcile(EVENING)

        result = apply(porch, EVENING, ("lighting/porch/drop", "yes"))

        assert sorted(published(result)) == [
            ("lighting/porch/control", ""),
            ("lighting/porch/devices", ""),
            ("lighting/porch/drop", ""),
            ("lighting/porch/state", ""),
            ("lighting/porch/window-end", ""),
            ("lighting/porch/window-start", ""),
        ]
        assert result.dropped_regions == ["porch"]
        assert result.removed == [("a", "porch"), ("b", "porch")]
        assert porch.get_region("porch") is None
        assert len(porch.registry) == 0

    def test_drop_leaves_other_regions(self, porch):
        apply(porch, NOON, ("lighting/yard/devices", "x"))

        apply(porch, NOON, ("lighting/porch/drop", "1"))

        assert porch.region_names() == ["yard"]
        assert "x" in porch.registry


# =============================================================================
# Reconciliation
# =============================================================================


class TestWindowReconciliation:
    """Tests for automatic on/off decisions."""

    def test_in_window_turns_on(self, porch):
        result = porch.reconcile(EVENING)

        assert published(result) == [
            ("lighting/porch/state", "on"),
            ("devices/a/outlet/on/set", "true"),
            ("devices/b/outlet/on/set", "true"),
        ]
        assert porch.registry.get("a").outlet is True

    def test_out_of_window_turns_off(self, porch):
        result = porch.reconcile(NOON)

        assert published(result) == [("lighting/porch/state", "off")]

    def test_idle_pass_publishes_nothing(self, porch):
        porch.reconcile(EVENING)
        result = porch.reconcile(EVENING + timedelta(seconds=10))

        assert result.reconciled is True
        assert published(result) == []

    def test_midnight_wraparound(self, engine):
        apply(
            engine,
            NOON,
            ("lighting/enable", "true"),
            ("lighting/porch/window-start", "22:00"),
            ("lighting/porch/window-end", "06:00"),
        )

        assert engine.region_in_window("porch", LATE)
        assert not engine.region_in_window("porch", NOON)

    @pytest.mark.parametrize("hour", [0, 6, 12, 17, 19, 23])
    @pytest.mark.parametrize("light", [0, 7])
    def test_region_without_window_is_never_lit(self, engine, hour, light):
        apply(
            engine,
            NOON,
            ("lighting/enable", "true"),
            ("environment/outdoor-light", str(light)),
            ("lighting/porch/devices", "a"),
        )
        now = datetime(2025, 12, 20, hour, 0)

        engine.reconcile(now)
        engine.reconcile(now + timedelta(minutes=5))

        assert engine.get_region("porch").state is False
        assert engine.registry.get("a").outlet is False

    def test_light_window_follows_light_level(self, engine):
        apply(
            engine,
            NOON,
            ("lighting/enable", "true"),
            ("lighting/porch/window-start", "light"),
            ("lighting/porch/window-end", "23:00"),
            ("environment/outdoor-light", "6"),
        )
        engine.reconcile(EVENING)
        assert engine.get_region("porch").state is False

        apply(engine, EVENING, ("environment/outdoor-light", "1"))
        engine.reconcile(EVENING)
        assert engine.get_region("porch").state is True

    def test_darkness_threshold_is_configurable(self):
        engine = LightingEngine(LightingConfig(darkness_threshold=2))
        apply(
            engine,
            NOON,
            ("lighting/enable", "true"),
            ("lighting/porch/window-start", "light"),
            ("environment/outdoor-light", "3"),
        )

        assert not engine.region_in_window("porch", EVENING)

    def test_out_of_season_is_out_of_window(self, porch):
        apply(
            porch,
            NOON,
            ("lighting/porch/season/start", "06/01"),
            ("lighting/porch/season/end", "08/31"),
        )

        result = porch.reconcile(EVENING)

        assert ("lighting/porch/state", "off") in published(result)
        assert porch.registry.get("a").outlet is False

    def test_in_season(self, porch):
        apply(
            porch,
            NOON,
            ("lighting/porch/season/start", "11/01"),
            ("lighting/porch/season/end", "01/06"),
        )

        porch.reconcile(EVENING)

        assert porch.get_region("porch").state is True


class TestGlobalEnable:
    """Tests for global enable/disable."""

    def test_disabled_turns_everything_off_once(self, engine):
        apply(
            engine,
            NOON,
            ("lighting/porch/window-start", "17:00"),
            ("lighting/porch/devices", "a"),
            ("lighting/yard/window-start", "17:00"),
            ("lighting/yard/devices", "b"),
            ("devices/a/outlet/on", "true"),
            ("devices/b/outlet/on", "true"),
        )

        result = engine.reconcile(EVENING)

        assert sorted(published(result)) == [
            ("devices/a/outlet/on/set", "false"),
            ("devices/b/outlet/on/set", "false"),
            ("lighting/porch/state", "off"),
            ("lighting/yard/state", "off"),
        ]

        for seconds in (10, 20, 30):
            idle = engine.reconcile(EVENING + timedelta(seconds=seconds))
            assert published(idle) == []

    def test_disable_after_enable(self, porch):
        porch.reconcile(EVENING)
        apply(porch, EVENING, ("lighting/enable", "false"))

        result = porch.reconcile(EVENING)

        assert published(result) == [
            ("lighting/porch/state", "off"),
            ("devices/a/outlet/on/set", "false"),
            ("devices/b/outlet/on/set", "false"),
        ]


class TestPublishDefer:
    """Tests for publish-storm suppression."""

    def test_recent_publish_defers_pass(self, porch):
        result = porch.reconcile(EVENING, last_publish=EVENING - timedelta(seconds=1))

        assert result.reconciled is False
        assert published(result) == []
        assert porch.get_region("porch").state is None

    def test_pass_runs_after_defer_window(self, porch):
        result = porch.reconcile(EVENING, last_publish=EVENING - timedelta(seconds=2))

        assert result.reconciled is True
        assert ("lighting/porch/state", "on") in published(result)

    def test_publish_stamp_after_now_does_not_defer(self, porch):
        """Wall clock stepped back past the last publish (DST fall-back, NTP)."""
        result = porch.reconcile(EVENING, last_publish=EVENING + timedelta(minutes=50))

        assert result.reconciled is True
        assert ("lighting/porch/state", "on") in published(result)

    def test_button_press_overrides_defer(self, porch):
        apply(porch, EVENING, ("devices/a/button/button", "true"))

        result = porch.reconcile(EVENING, last_publish=EVENING)

        assert result.reconciled is True
        assert porch.get_region("porch").control is ControlState.MANUAL_IN

    def test_command_overrides_defer(self, porch):
        apply(porch, EVENING, ("lighting/porch/command", "off"))

        result = porch.reconcile(EVENING, last_publish=EVENING)

        assert result.reconciled is True
        assert porch.get_region("porch").command is None


# =============================================================================
# Manual Override
# =============================================================================


class TestButtonPress:
    """Tests for button-driven manual override."""

    def test_press_in_window_forces_off(self, porch):
        porch.reconcile(EVENING)
        apply(porch, EVENING, ("devices/a/button/button", "true"))

        result = porch.reconcile(EVENING)

        assert published(result) == [
            ("devices/a/button/button/set", "false"),
            ("lighting/porch/control", "manual-i"),
            ("lighting/porch/state", "off"),
            ("devices/a/outlet/on/set", "false"),
            ("devices/b/outlet/on/set", "false"),
        ]
        assert [(t.previous, t.new) for t in result.transitions] == [
            (ControlState.AUTO, ControlState.MANUAL_IN)
        ]

    def test_press_out_of_window_forces_on(self, porch):
        apply(porch, NOON, ("devices/b/button/button", "true"))

        porch.reconcile(NOON)

        assert porch.get_region("porch").control is ControlState.MANUAL_OUT
        assert porch.get_region("porch").state is True

    def test_press_is_acknowledged_once(self, porch):
        apply(porch, EVENING, ("devices/a/button/button", "true"))

        first = porch.reconcile(EVENING)
        second = porch.reconcile(EVENING + timedelta(seconds=10))

        acks = [p for p in first.publishes + second.publishes if p.topic.endswith("button/set")]
        assert len(acks) == 1
        assert len(first.transitions) == 1
        assert second.transitions == []

    def test_second_press_returns_to_auto(self, porch):
        apply(porch, EVENING, ("devices/a/button/button", "true"))
        porch.reconcile(EVENING)
        apply(porch, EVENING, ("devices/a/button/button", "true"))

        porch.reconcile(EVENING)

        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is True

    def test_press_while_disabled_is_acknowledged_only(self, porch):
        apply(porch, EVENING, ("lighting/enable", "false"), ("devices/a/button/button", "true"))

        result = porch.reconcile(EVENING)

        assert ("devices/a/button/button/set", "false") in published(result)
        assert porch.get_region("porch").control is ControlState.AUTO

    def test_manual_outlet_change_counts_as_press(self, porch):
        porch.reconcile(EVENING)
        apply(porch, EVENING, ("devices/a/outlet/on", "false"))

        result = porch.reconcile(EVENING)

        assert porch.get_region("porch").control is ControlState.MANUAL_IN
        assert published(result) == [
            ("devices/a/button/button/set", "false"),
            ("lighting/porch/control", "manual-i"),
            ("lighting/porch/state", "off"),
            ("devices/b/outlet/on/set", "false"),
        ]

    def test_outlet_echo_is_not_a_press(self, porch):
        porch.reconcile(EVENING)
        apply(porch, EVENING, ("devices/a/outlet/on", "true"), ("devices/b/outlet/on", "true"))

        result = porch.reconcile(EVENING + timedelta(seconds=10))

        assert published(result) == []
        assert porch.get_region("porch").control is ControlState.AUTO


class TestCommands:
    """Tests for external region commands."""

    def test_toggle_round_trip(self, porch):
        porch.reconcile(EVENING)

        apply(porch, EVENING, ("lighting/porch/command", "toggle"))
        first = porch.reconcile(EVENING)
        assert porch.get_region("porch").control is ControlState.MANUAL_IN
        assert porch.get_region("porch").state is False
        assert ("lighting/porch/command", "") in published(first)

        apply(porch, EVENING, ("lighting/porch/command", "toggle"))
        porch.reconcile(EVENING)
        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is True

    def test_on_outside_window(self, porch):
        apply(porch, NOON, ("lighting/porch/command", "on"))

        result = porch.reconcile(NOON)

        assert porch.get_region("porch").control is ControlState.MANUAL_OUT
        assert porch.get_region("porch").state is True
        assert published(result)[:2] == [
            ("lighting/porch/control", "manual-o"),
            ("lighting/porch/command", ""),
        ]

    def test_on_inside_window_is_auto(self, porch):
        apply(porch, EVENING, ("lighting/porch/command", "on"))
        porch.reconcile(EVENING)

        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is True

    def test_off_inside_window(self, porch):
        apply(porch, EVENING, ("lighting/porch/command", "off"))
        porch.reconcile(EVENING)

        assert porch.get_region("porch").control is ControlState.MANUAL_IN
        assert porch.get_region("porch").state is False

    def test_off_outside_window_is_auto(self, porch):
        apply(porch, NOON, ("lighting/porch/command", "on"))
        porch.reconcile(NOON)
        apply(porch, NOON, ("lighting/porch/command", "off"))
        porch.reconcile(NOON)

        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is False

    def test_unknown_command_is_cleared(self, porch):
        apply(porch, EVENING, ("lighting/porch/command", "explode"))

        result = porch.reconcile(EVENING)

        region = porch.get_region("porch")
        assert region.control is ControlState.AUTO
        assert region.command is None
        assert "command" not in region.retained_keys
        assert ("lighting/porch/command", "") in published(result)
        assert result.transitions == []


class TestOverrideExpiry:
    """Tests for manual overrides ending when the window changes."""

    def test_manual_in_expires_when_window_closes(self, porch):
        apply(porch, EVENING, ("lighting/porch/command", "off"))
        porch.reconcile(EVENING)

        result = porch.reconcile(LATE)

        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is False
        assert [t.reason for t in result.transitions] == ["window change"]
        assert ("lighting/porch/control", "auto") in published(result)

    def test_manual_out_expires_when_window_opens(self, porch):
        apply(porch, NOON, ("lighting/porch/command", "on"))
        porch.reconcile(NOON)
        assert porch.get_region("porch").state is True

        porch.reconcile(EVENING)

        assert porch.get_region("porch").control is ControlState.AUTO
        assert porch.get_region("porch").state is True

    def test_control_stays_in_enum(self, porch):
        payloads = ["toggle", "on", "garbage", "off", "", "toggle"]
        for i, payload in enumerate(payloads):
            if payload:
                apply(porch, EVENING, ("lighting/porch/command", payload))
            porch.reconcile(EVENING + timedelta(minutes=i))
            assert porch.get_region("porch").control in set(ControlState)
