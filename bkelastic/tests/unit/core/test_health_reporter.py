import pytest

from bkelastic.core._private.health_reporter import HealthReporter
from bkelastic.tests.unit.utils.constants import TEST_INSTANCE_ID, \
    TEST_STACK_NAME
from bkelastic.tests.unit.utils.helpers import MockFleetManager, \
    MockProvisioningController


def _get_reporter(fleet_manager, controller, log_file=None,
                  instance_id_lookup=None):
    return HealthReporter(
        fleet_manager, controller,
        stack_name=TEST_STACK_NAME,
        resource_name="AgentAutoScaleGroup",
        log_file=log_file,
        instance_id_lookup=instance_id_lookup)


class TestHealthReporter:
    def test_on_error(self, tmp_path):
        log_file = tmp_path / "elastic-stack.log"
        log_file.write_text("first line\nFailed to contact docker\n\n")
        events = []
        fleet_manager = MockFleetManager(events=events)
        controller = MockProvisioningController(events=events)
        reporter = _get_reporter(fleet_manager, controller, str(log_file))
        reporter.set_instance_id(TEST_INSTANCE_ID)

        reporter.on_error("service_activator.py:51", 1)

        assert events == ["health", "signal"]
        assert fleet_manager.health == [(TEST_INSTANCE_ID, "Unhealthy")]
        assert controller.signals == [(
            TEST_STACK_NAME, "AgentAutoScaleGroup", 1,
            "Error on line service_activator.py:51: Failed to contact docker")]

    def test_failure_reason_precedes_health_report(self, tmp_path):
        log_file = tmp_path / "elastic-stack.log"
        log_file.write_text("Bootstrap failed: Failed to contact docker\n")

        class LoggingFleetManager(MockFleetManager):
            def set_instance_health(self, instance_id, status):
                with open(log_file, "a") as f:
                    f.write("Setting health of instance {} to {}\n".format(
                        instance_id, status))
                super().set_instance_health(instance_id, status)

        controller = MockProvisioningController()
        reporter = _get_reporter(
            LoggingFleetManager(), controller, str(log_file))
        reporter.set_instance_id(TEST_INSTANCE_ID)
        reporter.on_error("service_activator.py:47", 1)
        assert controller.signals[0][3] == (
            "Error on line service_activator.py:47: "
            "Bootstrap failed: Failed to contact docker")

    def test_on_error_without_instance_id(self):
        fleet_manager = MockFleetManager()
        controller = MockProvisioningController()
        reporter = _get_reporter(
            fleet_manager, controller,
            instance_id_lookup=lambda: TEST_INSTANCE_ID)
        reporter.on_error("status_tracker.py:54", 1)
        assert fleet_manager.health == [(TEST_INSTANCE_ID, "Unhealthy")]
        assert controller.signals[0][3] == "Error on line status_tracker.py:54: "

    def test_on_error_is_best_effort(self):
        fleet_manager = MockFleetManager(fail=True)
        controller = MockProvisioningController(fail=True)
        reporter = _get_reporter(fleet_manager, controller)
        reporter.set_instance_id(TEST_INSTANCE_ID)
        reporter.on_error("bootstrap.py:1", 2)
        assert controller.signals[0][2] == 2

    def test_lookup_failure_still_signals(self):
        def lookup():
            raise RuntimeError("metadata service down")

        controller = MockProvisioningController()
        reporter = _get_reporter(
            MockFleetManager(), controller, instance_id_lookup=lookup)
        reporter.on_error("identity.py:1", 1)
        assert len(controller.signals) == 1

    def test_on_success(self):
        fleet_manager = MockFleetManager()
        controller = MockProvisioningController()
        reporter = _get_reporter(fleet_manager, controller)
        reporter.on_success()
        assert controller.signals == [
            (TEST_STACK_NAME, "AgentAutoScaleGroup", 0, None)]
        assert fleet_manager.health == []

    def test_rejected_success_signal_is_benign(self):
        controller = MockProvisioningController(reject=True)
        _get_reporter(MockFleetManager(), controller).on_success()
        assert len(controller.signals) == 1


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main(["-v", __file__]))
