import pytest

from servicio_tecnico.config import Settings
from servicio_tecnico.core import ConfigurationException
from servicio_tecnico.ordenes.domain import DEFAULT_SEMAFORO_CONFIG
from servicio_tecnico.ordenes.infrastructure import AlertaSweepScheduler, SemaforoConfigManager


def test_missing_file_uses_defaults(tmp_path):
    manager = SemaforoConfigManager()

    config = manager.load(tmp_path / "nope.yaml")

    assert config == DEFAULT_SEMAFORO_CONFIG
    assert manager.get_config().diagnostico_horas == 72


def test_yaml_overrides_thresholds(tmp_path):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text("semaforo:\n  diagnostico_horas: 48\n  listo_entrega_dias: 3\n", encoding="utf-8")

    config = SemaforoConfigManager().load(path)

    assert config.diagnostico_horas == 48
    assert config.listo_entrega_dias == 3
    assert config.recibido_horas == 24


def test_flat_yaml_is_accepted(tmp_path):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text("recibido_horas: 12\n", encoding="utf-8")

    assert SemaforoConfigManager().load(path).recibido_horas == 12


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text("", encoding="utf-8")

    assert SemaforoConfigManager().load(path) == DEFAULT_SEMAFORO_CONFIG


@pytest.mark.parametrize(
    "content",
    [
        "semaforo: [1, 2\n",
        "- just\n- a list\n",
        "semaforo:\n  diagnostico_horas: -1\n",
    ],
)
def test_invalid_file_is_rejected_on_load(tmp_path, content):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationException):
        SemaforoConfigManager().load(path)


def test_reload_swaps_config(tmp_path):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text("diagnostico_horas: 72\n", encoding="utf-8")
    manager = SemaforoConfigManager()
    manager.load(path)

    path.write_text("diagnostico_horas: 24\n", encoding="utf-8")

    assert manager.reload() is True
    assert manager.config.diagnostico_horas == 24


def test_bad_reload_keeps_previous_config(tmp_path):
    path = tmp_path / "semaforo_config.yaml"
    path.write_text("diagnostico_horas: 60\n", encoding="utf-8")
    manager = SemaforoConfigManager()
    manager.load(path)

    path.write_text("diagnostico_horas: nope\n", encoding="utf-8")

    assert manager.reload() is False
    assert manager.config.diagnostico_horas == 60


def test_reload_before_load_is_a_no_op():
    assert SemaforoConfigManager().reload() is False


def test_config_access_before_load_fails():
    with pytest.raises(RuntimeError):
        SemaforoConfigManager().get_config()


def test_watching_requires_load():
    with pytest.raises(RuntimeError):
        SemaforoConfigManager().start_watching()


def test_watching_missing_file_is_skipped(tmp_path):
    manager = SemaforoConfigManager()
    manager.load(tmp_path / "nope.yaml")

    manager.start_watching()
    manager.stop_watching()


async def test_scheduler_disabled_with_zero_interval():
    scheduler = AlertaSweepScheduler(interval_seconds=0)

    async def job():
        pass

    await scheduler.start(job)

    assert scheduler.enabled is False
    assert scheduler.is_running is False
    await scheduler.stop()


async def test_scheduler_registers_single_instance_job():
    scheduler = AlertaSweepScheduler(interval_seconds=3600)

    async def job():
        pass

    await scheduler.start(job)
    try:
        assert scheduler.is_running is True
        registered = scheduler._scheduler.get_job(AlertaSweepScheduler.JOB_ID)
        assert registered.max_instances == 1
        assert registered.coalesce is True
    finally:
        await scheduler.stop()

    assert scheduler.is_running is False


def test_settings_validation():
    assert Settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValueError):
        Settings(environment="qa")
    with pytest.raises(ValueError):
        Settings(alertas_sweep_interval_seconds=-1)
