"""Unit tests for ConfigManager."""

import threading
import time
from datetime import datetime

import pytest

from photon_config.core.archive import SettingsArchiver
from photon_config.core.config_manager import ConfigManager, create_config_manager, create_provider
from photon_config.core.errors import ArchiveFormatError, UnsupportedStorageStrategyError
from photon_config.core.settings import StartupSettings
from photon_config.storage.legacy_provider import LegacyConfigProvider
from photon_config.storage.models import NetworkConfig, PhotonConfiguration
from photon_config.storage.provider import StorageStrategy
from photon_config.storage.sql_provider import SqlConfigProvider
from tests.conftest import make_camera


@pytest.fixture
def manager(tmp_path):
    root = tmp_path / "root"
    archiver = SettingsArchiver(
        root,
        export_path=tmp_path / "export" / "photonvision-settings.zip",
        staging_dir=tmp_path / "staging",
    )
    mgr = ConfigManager(root, SqlConfigProvider(root), archiver=archiver, autostart=False)
    mgr.load()
    yield mgr
    mgr.shutdown()


def _reload(root):
    provider = SqlConfigProvider(root)
    provider.load()
    return provider.get_config()


class TestProviderFactory:

    def test_sql(self, tmp_path):
        assert isinstance(create_provider("sql", tmp_path), SqlConfigProvider)

    def test_legacy(self, tmp_path):
        assert isinstance(create_provider(StorageStrategy.LEGACY, tmp_path), LegacyConfigProvider)

    def test_atomic_zip_is_unsupported(self, tmp_path):
        with pytest.raises(UnsupportedStorageStrategyError):
            create_provider(StorageStrategy.ATOMIC_ZIP, tmp_path)

    def test_unknown_name_raises_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            create_provider("floppy", tmp_path)

    def test_create_config_manager_from_settings(self, tmp_path):
        settings = StartupSettings(root_dir=tmp_path / "root", storage_strategy=StorageStrategy.LEGACY)
        with create_config_manager(settings, autostart=False) as mgr:
            assert isinstance(mgr.provider, LegacyConfigProvider)
            assert mgr.root == tmp_path / "root"
            assert not mgr.scheduler.is_running


class TestMutations:

    def test_save_module_marks_pending_without_writing(self, manager):
        manager.save_module(make_camera("cam"), "cam")
        assert manager.scheduler.pending
        assert "cam" in manager.get_config().camera_configurations
        assert _reload(manager.root).camera_configurations == {}

    def test_scheduler_flush_persists(self, manager):
        manager.scheduler.debounce = 0.0
        manager.save_module(make_camera("cam"), "cam")
        assert manager.scheduler.flush_if_due() is True
        assert "cam" in _reload(manager.root).camera_configurations

    def test_add_camera_configurations(self, manager):
        class Source:
            camera_configuration = make_camera("front")

        manager.add_camera_configurations([Source()])
        assert manager.scheduler.pending
        assert "front" in manager.get_config().camera_configurations

    def test_set_network_settings(self, manager):
        manager.set_network_settings(NetworkConfig(team_number=5940))
        assert manager.get_config().network_config.team_number == 5940
        assert manager.scheduler.pending

    def test_unload_camera_configs_only_touches_memory(self, manager):
        manager.save_module(make_camera("cam"), "cam")
        manager.save_to_disk()
        manager.unload_camera_configs()
        assert manager.get_config().camera_configurations == {}
        assert "cam" in _reload(manager.root).camera_configurations

    def test_clear_config_saves_immediately(self, manager, sample_config):
        manager.provider.set_config(sample_config)
        manager.save_to_disk()

        assert manager.clear_config() is True
        assert manager.get_config() == PhotonConfiguration()
        assert _reload(manager.root) == PhotonConfiguration()

    def test_concurrent_readers_see_consistent_snapshots(self, manager):
        errors = []
        stop = threading.Event()

        def reader():
            try:
                while not stop.is_set():
                    manager.get_config().to_dict()
            except Exception as exc:  # noqa: BLE001 - surfaced through the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for index in range(200):
            manager.save_module(make_camera(f"cam{index}"), f"cam{index}")
        stop.set()
        for thread in threads:
            thread.join(timeout=5)

        assert errors == []
        assert len(manager.get_config().camera_configurations) == 200

    @pytest.mark.parametrize("strategy", [StorageStrategy.SQL, StorageStrategy.LEGACY])
    def test_reads_during_disk_saves(self, tmp_path, strategy):
        root = tmp_path / "root"
        mgr = ConfigManager(root, create_provider(strategy, root), autostart=False)
        mgr.load()
        errors = []
        snapshots = []
        stop = threading.Event()

        def writer():
            try:
                while not stop.is_set():
                    assert mgr.save_to_disk() is True
            except Exception as exc:  # noqa: BLE001 - surfaced through the assertion below
                errors.append(exc)

        def reader():
            try:
                while not stop.is_set():
                    data = mgr.get_config().to_dict()
                    assert set(data) == {
                        "hardwareConfig", "hardwareSettings", "networkSettings", "cameraConfigurations"
                    }
                    for name, camera in data["cameraConfigurations"].items():
                        assert camera["uniqueName"] == name
                        assert len(camera["pipelineSettings"]) == 2
                    snapshots.append(len(data["cameraConfigurations"]))
            except Exception as exc:  # noqa: BLE001 - surfaced through the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=writer) for _ in range(2)]
        threads += [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        try:
            for index in range(40):
                mgr.save_module(make_camera(f"cam{index}"), f"cam{index}")
                mgr.set_network_settings(NetworkConfig(team_number=index))
                time.sleep(0.001)
            deadline = time.monotonic() + 5.0
            while len(snapshots) < 10 and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            stop.set()
            for thread in threads:
                thread.join(timeout=10)
            mgr.shutdown()

        assert errors == []
        assert snapshots
        assert all(0 <= count <= 40 for count in snapshots)

        assert mgr.save_to_disk() is True
        fresh = create_provider(strategy, root)
        fresh.load()
        assert fresh.get_config().to_dict() == mgr.get_config().to_dict()


class TestUploadsAndArchives:

    def test_uploaded_hardware_settings(self, manager, tmp_path):
        upload = tmp_path / "hw.json"
        upload.write_text('{"ledBrightnessPercentage": 12}', encoding="utf-8")
        assert manager.save_uploaded_hardware_settings(upload) is True
        assert _reload(manager.root).hardware_settings.led_brightness_percentage == 12

    def test_import_reloads_provider(self, manager, tmp_path, sample_config):
        other_root = tmp_path / "other"
        other = SqlConfigProvider(other_root)
        other.set_config(sample_config)
        other.save_to_disk()
        exporter = SettingsArchiver(other_root, export_path=tmp_path / "other.zip", staging_dir=tmp_path / "s2")
        archive = exporter.export_settings_archive()

        assert manager.import_settings_archive(archive) is True
        assert manager.get_config() == sample_config

    def test_import_drops_pending_save(self, manager, tmp_path, sample_config):
        other_root = tmp_path / "other"
        other = SqlConfigProvider(other_root)
        other.set_config(sample_config)
        other.save_to_disk()
        exporter = SettingsArchiver(other_root, export_path=tmp_path / "other.zip", staging_dir=tmp_path / "s2")
        archive = exporter.export_settings_archive()

        manager.scheduler.debounce = 0.0
        manager.save_module(make_camera("stale"), "stale")
        assert manager.scheduler.pending

        assert manager.import_settings_archive(archive) is True
        assert not manager.scheduler.pending
        assert manager.scheduler.flush_if_due() is False
        assert _reload(manager.root).to_dict() == sample_config.to_dict()

    def test_rejected_import_keeps_pending_save(self, manager, tmp_path):
        bogus = tmp_path / "bogus.zip"
        bogus.write_bytes(b"not a zip")
        manager.save_module(make_camera("cam"), "cam")

        with pytest.raises(ArchiveFormatError):
            manager.import_settings_archive(bogus)
        assert manager.scheduler.pending
        assert "cam" in manager.get_config().camera_configurations

    def test_export_returns_archive_path(self, manager):
        manager.save_to_disk()
        archive = manager.export_settings_archive()
        assert archive.name == "photonvision-settings.zip"
        assert archive.is_file()


class TestRootLayout:

    def test_directories(self, manager):
        assert manager.get_logs_dir() == manager.root / "logs"
        assert manager.get_calib_dir() == manager.root / "calibImgs"

    def test_image_save_path_is_created(self, manager):
        path = manager.get_image_save_path()
        assert path == manager.root / "imgSaves"
        assert path.is_dir()

    def test_log_path_uses_timestamped_name(self, manager):
        path = manager.get_log_path(datetime(2024, 3, 7, 15, 4, 9))
        assert path.name == "photonvision-2024-3-7_03-04-09.log"
        assert path.parent.is_dir()

    def test_log_name_helpers(self):
        name = ConfigManager.ta_to_log_fname(datetime(2023, 11, 20, 9, 30, 0))
        assert ConfigManager.log_fname_to_date(name) == datetime(2023, 11, 20, 9, 30, 0)


class TestLifecycle:

    def test_autostart_and_shutdown(self, tmp_path):
        root = tmp_path / "root"
        mgr = ConfigManager(root, SqlConfigProvider(root), tick_interval=0.05, debounce=0.05)
        try:
            assert mgr.scheduler.is_running
        finally:
            mgr.shutdown(timeout=2.0)
        assert not mgr.scheduler.is_running

    def test_load_migrates_legacy_layout(self, legacy_root, sample_config):
        with ConfigManager(legacy_root, SqlConfigProvider(legacy_root), autostart=False) as mgr:
            mgr.load()
            assert mgr.get_config() == sample_config
        assert (legacy_root / "cameras_backup").is_dir()
