"""Tests for the deployment run record."""

import pytest

from logstackctl.rollout.models import GateResult, SyncState
from logstackctl.rollout.run import DeploymentRun, RunStatus, SealedRunError


class TestDeploymentRun:
    """Tests for run lifecycle and sealing."""

    def test_new_run_is_running(self):
        run = DeploymentRun(environment="dev")
        assert run.outcome.status == RunStatus.RUNNING
        assert not run.sealed
        assert not run.succeeded
        assert len(run.id) == 8

    def test_records_unit_outcomes(self):
        run = DeploymentRun(environment="dev")
        outcome = run.start_unit("storage", 2)
        outcome.gate_result = GateResult.CONVERGED
        outcome.final_sync_state = SyncState.SYNCED
        outcome.attempts = 3
        run.finish_unit(outcome)

        recorded = run.unit_outcomes["storage"]
        assert recorded.converged
        assert recorded.duration_seconds is not None
        assert recorded.to_dict()["final_sync_state"] == "Synced"

    def test_seal_success(self):
        run = DeploymentRun(environment="dev")
        run.complete_wave(2)
        run.seal_success()

        assert run.sealed
        assert run.succeeded
        assert str(run.outcome) == "Success"
        assert run.waves_completed == (2,)

    def test_seal_aborted(self):
        run = DeploymentRun(environment="dev")
        run.seal_aborted("storage", "timeout")

        assert run.sealed
        assert not run.succeeded
        assert run.outcome.unit == "storage"
        assert str(run.outcome) == "Aborted(storage, timeout)"

    def test_sealed_run_is_immutable(self):
        run = DeploymentRun(environment="dev")
        run.seal_success()

        with pytest.raises(SealedRunError):
            run.start_unit("storage", 2)
        with pytest.raises(SealedRunError):
            run.complete_wave(3)
        with pytest.raises(SealedRunError):
            run.seal_aborted("storage", "timeout")

    def test_sealed_outcomes_are_read_only(self):
        run = DeploymentRun(environment="dev")
        outcome = run.start_unit("storage", 2)
        run.finish_unit(outcome)
        run.complete_wave(2)
        run.seal_aborted("storage", "timeout")

        with pytest.raises(TypeError):
            run.unit_outcomes["forwarder"] = outcome
        with pytest.raises(SealedRunError):
            run.unit_outcomes["storage"].gate_result = GateResult.CONVERGED
        with pytest.raises(AttributeError):
            run.waves_completed.append(3)
        assert run.unit_outcomes["storage"].gate_result is None
        assert run.waves_completed == (2,)

    def test_outcome_mutable_until_sealed(self):
        run = DeploymentRun(environment="dev")
        outcome = run.start_unit("storage", 2)
        outcome.attempts = 4
        run.finish_unit(outcome)
        assert run.unit_outcomes["storage"].attempts == 4

    def test_to_dict(self):
        run = DeploymentRun(environment="production", dry_run=True)
        run.start_unit("storage", 2)
        run.seal_aborted("storage", "timeout")
        data = run.to_dict()

        assert data["environment"] == "production"
        assert data["dry_run"] is True
        assert data["outcome"] == "Aborted"
        assert data["aborted_unit"] == "storage"
        assert data["reason"] == "timeout"
        assert data["units"][0]["name"] == "storage"
        assert data["finished_at"] is not None
