"""Tests for the health gate and cancellation token."""

from logstackctl.core.exceptions import K8sError
from logstackctl.rollout.gate import CancellationToken, HealthGate
from logstackctl.rollout.models import GateResult, HealthState, SyncState, UnitStatus
from logstackctl.rollout.probe import ApplicationStatusProbe

from conftest import OUT_OF_SYNC, SYNCED_HEALTHY, SYNCING_DEGRADED, FakeClock, ScriptedProbe


def make_gate(probe: ScriptedProbe, clock: FakeClock) -> HealthGate:
    return HealthGate(probe, clock=clock, sleep=clock.sleep)


class TestHealthGate:
    """Tests for bounded convergence polling."""

    def test_already_converged_returns_without_sleeping(self, fake_clock):
        probe = ScriptedProbe({"storage": [SYNCED_HEALTHY]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=60, poll_interval=5)

        assert report.result == GateResult.CONVERGED
        assert report.polls == 1
        assert fake_clock.sleeps == []
        assert report.last_status == SYNCED_HEALTHY

    def test_converges_after_some_polls(self, fake_clock):
        probe = ScriptedProbe({"storage": [OUT_OF_SYNC, OUT_OF_SYNC, SYNCED_HEALTHY]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=60, poll_interval=5)

        assert report.result == GateResult.CONVERGED
        assert report.polls == 3
        assert fake_clock.sleeps == [5, 5]
        assert report.elapsed == 10

    def test_synced_but_not_healthy_does_not_converge(self, fake_clock):
        probe = ScriptedProbe({"storage": [UnitStatus(SyncState.SYNCED, HealthState.PROGRESSING)]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=20, poll_interval=5)
        assert report.result == GateResult.TIMED_OUT

    def test_times_out(self, fake_clock):
        probe = ScriptedProbe({"storage": [OUT_OF_SYNC]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=30, poll_interval=10)

        assert report.result == GateResult.TIMED_OUT
        assert report.polls == 3
        assert report.last_status == OUT_OF_SYNC
        assert report.elapsed >= 30

    def test_last_sleep_is_capped_at_remaining_time(self, fake_clock):
        probe = ScriptedProbe({"storage": [OUT_OF_SYNC]})
        make_gate(probe, fake_clock).await_convergence("storage", timeout=12, poll_interval=5)
        assert fake_clock.sleeps == [5, 5, 2]

    def test_degraded_is_not_fatal_before_timeout(self, fake_clock):
        probe = ScriptedProbe({"storage": [SYNCING_DEGRADED, SYNCING_DEGRADED, SYNCED_HEALTHY]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=60, poll_interval=5)

        assert report.result == GateResult.CONVERGED
        assert report.degraded_observations == 2

    def test_probe_errors_are_retried_until_deadline(self, fake_clock):
        probe = ScriptedProbe({"storage": [K8sError("connection refused"), SYNCED_HEALTHY]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=60, poll_interval=5)

        assert report.result == GateResult.CONVERGED
        assert report.polls == 2

    def test_probe_errors_until_timeout(self, fake_clock):
        probe = ScriptedProbe({"storage": [K8sError("forbidden")]})
        report = make_gate(probe, fake_clock).await_convergence("storage", timeout=10, poll_interval=5)

        assert report.result == GateResult.TIMED_OUT
        assert report.last_status is None

    def test_unreachable_api_server_times_out(self, fake_clock, unreachable_k8s):
        probe = ApplicationStatusProbe(unreachable_k8s, "openshift-gitops")
        gate = HealthGate(probe, clock=fake_clock, sleep=fake_clock.sleep)
        report = gate.await_convergence("storage", timeout=30, poll_interval=5)

        assert report.result == GateResult.TIMED_OUT
        assert report.polls == 6
        assert report.last_status is None

    def test_cancelled_before_first_poll(self, fake_clock):
        token = CancellationToken()
        token.cancel("interrupted")
        probe = ScriptedProbe({"storage": [SYNCED_HEALTHY]})
        report = make_gate(probe, fake_clock).await_convergence("storage", 60, 5, token=token)

        assert report.result == GateResult.ABORTED
        assert probe.calls == []

    def test_cancel_during_wait_aborts(self, fake_clock):
        token = CancellationToken()

        def sleep(seconds, tok):
            fake_clock.advance(seconds)
            tok.cancel("interrupted")
            return True

        probe = ScriptedProbe({"storage": [OUT_OF_SYNC]})
        gate = HealthGate(probe, clock=fake_clock, sleep=sleep)
        report = gate.await_convergence("storage", 60, 5, token=token)

        assert report.result == GateResult.ABORTED
        assert report.polls == 1
        assert token.reason == "interrupted"


class TestCancellationToken:
    """Tests for run-level cancellation."""

    def test_not_cancelled_by_default(self):
        token = CancellationToken()
        assert not token.cancelled
        assert token.reason is None

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("interrupted")
        token.cancel("other")
        assert token.cancelled
        assert token.reason == "interrupted"

    def test_deadline(self, fake_clock):
        token = CancellationToken(deadline=fake_clock() + 30, clock=fake_clock)
        assert not token.cancelled
        fake_clock.advance(30)
        assert token.cancelled
        assert token.reason == "run deadline exceeded"

    def test_wait_returns_immediately_when_cancelled(self):
        token = CancellationToken()
        token.cancel()
        assert token.wait(60) is True

    def test_wait_without_cancel(self):
        assert CancellationToken().wait(0) is False

    def test_with_timeout_none(self):
        token = CancellationToken.with_timeout(None)
        assert not token.cancelled
