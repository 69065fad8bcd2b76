"""Tests for sync triggers and the fallback policy."""

from unittest.mock import MagicMock

import pytest

from logstackctl.core.exceptions import ArgoCDError, K8sError, TriggerError
from logstackctl.rollout.models import TriggerMethod
from logstackctl.rollout.triggers import (
    HARD_REFRESH_PATCH,
    SELF_HEAL_PATCH,
    ArgoCDApiTrigger,
    PatchTrigger,
    TriggerPolicy,
    build_trigger_policy,
)

from conftest import RecordingTrigger


@pytest.fixture
def argocd() -> MagicMock:
    client = MagicMock()
    client.configured = True
    client.get_user_info.return_value = {"loggedIn": True}
    client.sync_application.return_value = {"status": {"operationState": {"phase": "Running"}}}
    return client


class TestArgoCDApiTrigger:
    """Tests for the primary trigger."""

    def test_sync_accepted(self, argocd):
        ack = ArgoCDApiTrigger(argocd).trigger("logging-forwarder-dev")

        assert ack.method == TriggerMethod.PRIMARY
        assert "Running" in ack.message
        argocd.sync_application.assert_called_once_with("logging-forwarder-dev", prune=False)

    def test_session_checked_once(self, argocd):
        trigger = ArgoCDApiTrigger(argocd)
        trigger.trigger("a")
        trigger.trigger("b")
        assert argocd.get_user_info.call_count == 1

    def test_not_configured(self, argocd):
        argocd.configured = False
        with pytest.raises(TriggerError) as exc:
            ArgoCDApiTrigger(argocd).trigger("a")
        assert exc.value.method == "primary"
        argocd.sync_application.assert_not_called()

    def test_session_not_usable(self, argocd):
        argocd.get_user_info.side_effect = ArgoCDError("unauthorized", status_code=401)
        with pytest.raises(TriggerError, match="session not usable"):
            ArgoCDApiTrigger(argocd).trigger("a")

    def test_sync_refused(self, argocd):
        argocd.sync_application.side_effect = ArgoCDError("permission denied", status_code=403)
        with pytest.raises(TriggerError) as exc:
            ArgoCDApiTrigger(argocd).trigger("a")
        assert exc.value.unit == "a"

    def test_operation_in_progress_counts_as_accepted(self, argocd):
        argocd.sync_application.side_effect = ArgoCDError(
            "Another operation is already in progress", status_code=400
        )
        ack = ArgoCDApiTrigger(argocd).trigger("a")
        assert ack.method == TriggerMethod.PRIMARY
        assert "in progress" in ack.message


class TestPatchTrigger:
    """Tests for the fallback trigger."""

    def test_patches_refresh_then_self_heal(self):
        k8s = MagicMock()
        sleep = MagicMock()
        ack = PatchTrigger(k8s, "openshift-gitops", settle_seconds=5, sleep=sleep).trigger("storage")

        assert ack.method == TriggerMethod.FALLBACK
        assert ack.warnings == ()
        patches = [c.args for c in k8s.patch_application.call_args_list]
        assert patches == [
            ("storage", "openshift-gitops", HARD_REFRESH_PATCH),
            ("storage", "openshift-gitops", SELF_HEAL_PATCH),
        ]
        sleep.assert_called_once_with(5)

    def test_self_heal_still_attempted_when_refresh_fails(self):
        k8s = MagicMock()
        k8s.patch_application.side_effect = [K8sError("conflict", status_code=409), {}]
        ack = PatchTrigger(k8s, "ns", settle_seconds=0).trigger("storage")

        assert k8s.patch_application.call_count == 2
        assert len(ack.warnings) == 1
        assert ack.warnings[0].startswith("refresh:")

    def test_both_patches_failing_raises(self):
        k8s = MagicMock()
        k8s.patch_application.side_effect = K8sError("not found", status_code=404)
        with pytest.raises(TriggerError) as exc:
            PatchTrigger(k8s, "ns", settle_seconds=0).trigger("storage")
        assert exc.value.method == "fallback"
        assert "refresh" in exc.value.message
        assert "self-heal" in exc.value.message

    def test_unreachable_api_server_raises_trigger_error(self, unreachable_k8s):
        with pytest.raises(TriggerError) as exc:
            PatchTrigger(unreachable_k8s, "ns", settle_seconds=0).trigger("storage")
        assert "Max retries exceeded" in exc.value.message

    def test_no_settle_sleep_when_zero(self):
        sleep = MagicMock()
        PatchTrigger(MagicMock(), "ns", settle_seconds=0, sleep=sleep).trigger("storage")
        sleep.assert_not_called()


class TestTriggerPolicy:
    """Tests for primary-then-fallback selection."""

    def test_primary_success_skips_fallback(self):
        primary = RecordingTrigger(TriggerMethod.PRIMARY)
        fallback = RecordingTrigger(TriggerMethod.FALLBACK)
        outcome = TriggerPolicy([primary, fallback]).trigger("storage")

        assert outcome.succeeded
        assert outcome.method == TriggerMethod.PRIMARY
        assert fallback.calls == []

    def test_falls_back_on_primary_failure(self):
        primary = RecordingTrigger(TriggerMethod.PRIMARY, fail_for={"storage"})
        fallback = RecordingTrigger(TriggerMethod.FALLBACK)
        outcome = TriggerPolicy([primary, fallback]).trigger("storage")

        assert outcome.succeeded
        assert outcome.method == TriggerMethod.FALLBACK
        assert primary.calls == ["storage"]
        assert fallback.calls == ["storage"]

    def test_all_failing_returns_error_instead_of_raising(self):
        primary = RecordingTrigger(TriggerMethod.PRIMARY, fail_for={"*"})
        fallback = RecordingTrigger(TriggerMethod.FALLBACK, fail_for={"*"})
        outcome = TriggerPolicy([primary, fallback]).trigger("storage")

        assert not outcome.succeeded
        assert outcome.method == TriggerMethod.FALLBACK
        assert "primary" in outcome.error
        assert "fallback" in outcome.error

    def test_unreachable_api_server_reported_as_failed_outcome(self, unreachable_k8s):
        outcome = TriggerPolicy([PatchTrigger(unreachable_k8s, "ns", settle_seconds=0)]).trigger("storage")

        assert not outcome.succeeded
        assert outcome.method == TriggerMethod.FALLBACK
        assert "refresh" in outcome.error

    def test_requires_a_trigger(self):
        with pytest.raises(ValueError):
            TriggerPolicy([])


class TestBuildTriggerPolicy:
    """Tests for trigger-mode selection."""

    @pytest.mark.parametrize(
        "mode,methods",
        [
            ("auto", [TriggerMethod.PRIMARY, TriggerMethod.FALLBACK]),
            ("primary", [TriggerMethod.PRIMARY]),
            ("fallback", [TriggerMethod.FALLBACK]),
        ],
    )
    def test_modes(self, mode, methods):
        policy = build_trigger_policy(mode, MagicMock(), MagicMock(), "ns")
        assert [t.method for t in policy.triggers] == methods

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            build_trigger_policy("manual", MagicMock(), MagicMock(), "ns")
