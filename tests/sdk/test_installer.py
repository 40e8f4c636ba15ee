"""
Tests for SDK installation.

The installer runs end-to-end against FakeSdkRepository served through
responses; only the network is mocked.
"""

import io
import os

import pytest
import requests
import responses

from apm.config.store import Config
from apm.core.download import ProgressThrottle
from apm.core.exceptions import ChecksumMismatchError
from apm.sdk.installer import EXIT_FAILURE, EXIT_SUCCESS, SdkInstaller
from apm.sdk.layout import File, Jar, SdkLayout, Tool
from tests.fixtures.sdk_repository import (
    ASSETS,
    BASE_URL,
    BUILD_TOOLS,
    PLATFORM,
    TOOLS,
    TZDATA,
    sha256_hex,
)
from tests.mocks.progress import ProgressRecorder, RecordingProgress

INVALID_CHECKSUM = "0" * 64


@pytest.fixture
def layout(tmp_path):
    return SdkLayout(tmp_path / "sdk")


@pytest.fixture
def config(tmp_path):
    return Config(tmp_path / "cfg" / "apm.yaml")


@pytest.fixture
def recorder():
    return ProgressRecorder()


@pytest.fixture
def make_installer(config, layout, recorder):
    """Create an installer that reads answers from the given text."""

    def _make(answers: str = "", arch: str = "x86_64", config=config):
        return SdkInstaller(
            config,
            layout=layout,
            progress_factory=recorder,
            input_stream=io.StringIO(answers),
            base_url=BASE_URL,
            arch=arch,
        )

    return _make


def assert_fully_installed(layout):
    assert layout.missing_files() == []
    for tool in Tool:
        path = layout.get_tool_path(tool)
        assert path.read_bytes() == TOOLS[tool.value]
        assert os.access(path, os.X_OK)
    assert layout.get_jar_path(Jar.D8).read_bytes() == BUILD_TOOLS["build-tools/lib/d8.jar"]
    assert (
        layout.get_jar_path(Jar.APKSIGNER).read_bytes()
        == BUILD_TOOLS["build-tools/lib/apksigner.jar"]
    )
    assert (
        layout.get_jar_path(Jar.FRAMEWORK).read_bytes()
        == PLATFORM["android-28/android.jar"]
    )
    assert layout.get_file_path(File.TZDATA).read_bytes() == TZDATA
    assert layout.get_file_path(File.DEBUG_KEYSTORE).read_bytes() == ASSETS["debug.jks"]


class TestFreshInstall:
    """Test installing SDK for the first time."""

    def test_install(
        self, make_installer, layout, config, recorder, sdk_repository,
        mocked_responses, capsys,
    ):
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_SUCCESS

        assert_fully_installed(layout)
        assert config.get_installed_version() == 28
        assert Config(config.path).get_installed_version() == 28
        assert recorder.failures == []
        assert [message for _, message in recorder.finished] == [
            "Tools for x86_64 installed",
            "Build tools installed",
            "Android framework installed",
            "Time zone database 2021a installed",
            "Debug keystore downloaded",
            "Project template downloaded",
        ]

        out = capsys.readouterr().out
        assert "Installing SDK (API 28):" in out
        assert "SDK installed." in out
        assert "NOTE: Use 'apm info'" in out

    def test_only_listed_build_tools_extracted(
        self, make_installer, layout, sdk_repository, mocked_responses
    ):
        sdk_repository.register(mocked_responses)

        make_installer().install()

        assert sorted(p.name for p in layout.jars_dir.iterdir()) == [
            "android.jar",
            "apksigner.jar",
            "d8.jar",
        ]

    def test_choose_from_several_versions(
        self, make_installer, layout, config, sdk_repository, mocked_responses, capsys
    ):
        sdk_repository.tool_apis = [24, 26, 28]
        sdk_repository.build_tool_apis = [24, 26, 28]
        sdk_repository.platform_apis = [24, 26, 28]
        sdk_repository.register(mocked_responses)

        assert make_installer("24\n").install() == EXIT_SUCCESS

        assert config.get_installed_version() == 24
        urls = sdk_repository.requested_urls(mocked_responses)
        assert sdk_repository.tools_url(24) in urls
        assert sdk_repository.build_tools_url(24) in urls
        assert sdk_repository.platform_url(24) in urls
        assert sdk_repository.tools_url(28) not in urls
        assert "Installing SDK (API 24):" in capsys.readouterr().out

    def test_version_without_build_tools(
        self, make_installer, layout, config, recorder, sdk_repository, mocked_responses
    ):
        """Test every category must be published for the chosen version."""
        sdk_repository.tool_apis = [24, 26, 28]
        sdk_repository.build_tool_apis = [26, 28]
        sdk_repository.platform_apis = [26, 28]
        sdk_repository.register(mocked_responses)

        assert make_installer("24\n").install() == EXIT_FAILURE

        assert sdk_repository.tools_url(24) in sdk_repository.requested_urls(
            mocked_responses
        )
        assert layout.get_tool_path(Tool.AAPT2).exists()
        assert recorder.last_failure() == "Couldn't find build tools in the manifest"
        assert config.get_installed_version() is None

    def test_scratch_file_removed(
        self, make_installer, scratch_dir, sdk_repository, mocked_responses
    ):
        sdk_repository.register(mocked_responses)

        make_installer().install()

        assert list(scratch_dir.iterdir()) == []


class TestReinstall:
    """Test running setup over an installed SDK."""

    @pytest.fixture
    def installed(self, make_installer, sdk_repository, mocked_responses):
        sdk_repository.register(mocked_responses)
        assert make_installer().install() == EXIT_SUCCESS
        mocked_responses.calls.reset()

    def test_decline_override(
        self, installed, make_installer, layout, config, mocked_responses, capsys
    ):
        capsys.readouterr()
        before = {p: p.read_bytes() for p in layout.all_paths()}

        assert make_installer("no\n").install(28) == EXIT_SUCCESS

        assert len(mocked_responses.calls) == 0
        assert {p: p.read_bytes() for p in layout.all_paths()} == before
        assert config.get_installed_version() == 28
        out = capsys.readouterr().out
        assert "You have already installed SDK with API 28." in out
        assert "yes/no*> " in out

    def test_decline_override_by_default(self, make_installer, mocked_responses):
        assert make_installer("\n").install(28) == EXIT_SUCCESS

        assert len(mocked_responses.calls) == 0

    def test_keep_api_independent_files(
        self, installed, make_installer, sdk_repository, mocked_responses, capsys
    ):
        capsys.readouterr()

        assert make_installer("yes\nno\n").install(28) == EXIT_SUCCESS

        urls = sdk_repository.requested_urls(mocked_responses)
        assert sdk_repository.tools_url(28) in urls
        assert sdk_repository.tzdata_url not in urls
        assert sdk_repository.asset_url("debug.jks") not in urls
        out = capsys.readouterr().out
        assert "Do you want to update API independent files?" in out
        assert "NOTE:" not in out

    def test_update_api_independent_files_by_default(
        self, installed, make_installer, layout, sdk_repository, mocked_responses, capsys
    ):
        capsys.readouterr()

        assert make_installer("yes\n\n").install(28) == EXIT_SUCCESS

        urls = sdk_repository.requested_urls(mocked_responses)
        assert sdk_repository.tzdata_url in urls
        assert sdk_repository.asset_url("project-template.zip") in urls
        assert "Updating API independent files:" in capsys.readouterr().out
        assert_fully_installed(layout)

    def test_missing_file_installed_without_asking(
        self, installed, make_installer, layout, sdk_repository, mocked_responses, capsys
    ):
        capsys.readouterr()
        layout.get_file_path(File.TZDATA).unlink()

        # Only the override question is answered, another prompt would hit EOF.
        assert make_installer("yes\n").install(28) == EXIT_SUCCESS

        assert layout.get_file_path(File.TZDATA).read_bytes() == TZDATA
        assert "update API independent files" not in capsys.readouterr().out

    def test_input_ends_at_prompt(self, installed, make_installer):
        with pytest.raises(EOFError):
            make_installer("").install(28)


class TestFailures:
    """Test that a failed step aborts installation."""

    def test_manifest_unavailable(
        self, make_installer, layout, config, sdk_repository, mocked_responses, capsys
    ):
        sdk_repository.statuses[sdk_repository.manifest_url] = 404
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert not layout.root.exists()
        assert config.get_installed_version() is None
        assert "status code 404" in capsys.readouterr().err

    def test_no_versions(self, make_installer, layout, sdk_repository, mocked_responses):
        sdk_repository.tool_apis = []
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert not layout.root.exists()

    def test_tools_checksum_mismatch(
        self, make_installer, layout, config, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["tools"] = INVALID_CHECKSUM
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert not layout.get_tool_path(Tool.AAPT2).exists()
        assert recorder.last_failure() == (
            "Couldn't install tools: invalid checksum. Try to set up SDK again"
        )
        urls = sdk_repository.requested_urls(mocked_responses)
        assert sdk_repository.build_tools_url(28) not in urls
        assert config.get_installed_version() is None

    def test_tools_not_published_for_architecture(
        self, make_installer, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.register(mocked_responses)

        assert make_installer(arch="mips64el").install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Tools aren't available for architecture mips64el. "
            "Try another API version, if available"
        )

    def test_tools_checksum_missing(
        self, make_installer, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["tools"] = None
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Checksum of tools doesn't exist for architecture x86_64"
        )
        assert sdk_repository.tools_url(28) not in sdk_repository.requested_urls(
            mocked_responses
        )

    def test_tools_network_error(
        self, make_installer, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.register(mocked_responses)
        mocked_responses.replace(
            responses.GET,
            sdk_repository.tools_url(28),
            body=requests.ConnectionError("connection reset"),
        )

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == "Couldn't download tools. connection reset"

    def test_build_tools_checksum_missing(
        self, make_installer, layout, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["build-tools"] = None
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == "Checksum of build tools doesn't exist"
        assert sdk_repository.build_tools_url(28) not in sdk_repository.requested_urls(
            mocked_responses
        )
        # Earlier step is kept
        assert layout.get_tool_path(Tool.AAPT2).exists()

    def test_build_tools_entry_missing(
        self, make_installer, config, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.build_tools_entries.append("build-tools/lib/missing.jar")
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Couldn't extract build tools: "
            'failed to get ZIP entry "build-tools/lib/missing.jar"'
        )
        assert config.get_installed_version() is None

    def test_platform_server_error(
        self, make_installer, layout, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.statuses[sdk_repository.platform_url(28)] = 500
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == "Couldn't download platform (status code 500)"
        assert not layout.get_jar_path(Jar.FRAMEWORK).exists()

    def test_framework_entry_missing(
        self, make_installer, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.framework_entry = "android-29/android.jar"
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Couldn't extract Android framework: "
            'failed to get ZIP entry "android-29/android.jar"'
        )

    def test_tzdata_checksum_mismatch(
        self, make_installer, layout, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["tzdata"] = INVALID_CHECKSUM
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Couldn't install time zone database: invalid checksum. "
            "Try to set up SDK again"
        )
        assert not layout.get_file_path(File.TZDATA).exists()

    def test_unknown_asset(
        self, make_installer, layout, config, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.asset_names = ["debug.jks", "readme.txt"]
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == "Couldn't install asset readme.txt: unknown asset"
        assert layout.get_file_path(File.DEBUG_KEYSTORE).exists()
        assert config.get_installed_version() is None

    def test_asset_checksum_mismatch_removes_file(
        self, make_installer, layout, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["asset:project-template.zip"] = INVALID_CHECKSUM
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "Couldn't install asset project-template.zip: invalid checksum. "
            "Try to set up SDK again"
        )
        assert not layout.get_file_path(File.PROJECT_TEMPLATE).exists()
        assert layout.get_file_path(File.DEBUG_KEYSTORE).exists()

    def test_asset_write_failure_removes_file(
        self, make_installer, layout, recorder, sdk_repository, mocked_responses,
        monkeypatch,
    ):
        """Test an asset is removed when writing fails partway through."""
        sdk_repository.register(mocked_responses)
        original_update = ProgressThrottle.update

        def failing_update(throttle, downloaded, total):
            if throttle.progress.text == "Downloading project-template.zip":
                raise OSError(28, "No space left on device")
            return original_update(throttle, downloaded, total)

        monkeypatch.setattr(ProgressThrottle, "update", failing_update)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == (
            "File system error: [Errno 28] No space left on device"
        )
        assert not layout.get_file_path(File.PROJECT_TEMPLATE).exists()
        assert layout.get_file_path(File.DEBUG_KEYSTORE).exists()

    def test_asset_removed_on_interrupt(
        self, make_installer, layout, sdk_repository, mocked_responses, monkeypatch
    ):
        sdk_repository.register(mocked_responses)

        def interrupted_update(throttle, downloaded, total):
            if throttle.progress.text == "Downloading debug.jks":
                raise KeyboardInterrupt
            return True

        monkeypatch.setattr(ProgressThrottle, "update", interrupted_update)

        with pytest.raises(KeyboardInterrupt):
            make_installer().install()

        assert not layout.get_file_path(File.DEBUG_KEYSTORE).exists()

    def test_asset_checksum_missing(
        self, make_installer, recorder, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["asset:debug.jks"] = None
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert recorder.last_failure() == "Asset debug.jks doesn't have checksum"

    def test_version_not_preserved(
        self, make_installer, layout, tmp_path, sdk_repository, mocked_responses, capsys
    ):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        sdk_repository.register(mocked_responses)

        installer = make_installer(config=Config(blocker / "apm.yaml"))
        assert installer.install() == EXIT_FAILURE

        assert_fully_installed(layout)
        assert "Couldn't preserve API version" in capsys.readouterr().err

    def test_scratch_file_removed_on_failure(
        self, make_installer, scratch_dir, sdk_repository, mocked_responses
    ):
        sdk_repository.checksums["platform"] = INVALID_CHECKSUM
        sdk_repository.register(mocked_responses)

        assert make_installer().install() == EXIT_FAILURE

        assert list(scratch_dir.iterdir()) == []


class TestCheckSha256:
    """Test checksum comparison helper."""

    def test_case_sensitive(self, tmp_path):
        path = tmp_path / "file"
        path.write_bytes(b"content")
        progress = RecordingProgress(determined=True)

        SdkInstaller.check_sha256(path, sha256_hex(b"content"), progress, "file")
        assert progress.determined is False
        assert progress.text == "Calculating checksum"

        with pytest.raises(ChecksumMismatchError, match="invalid checksum"):
            SdkInstaller.check_sha256(
                path, sha256_hex(b"content").upper(), progress, "file"
            )
