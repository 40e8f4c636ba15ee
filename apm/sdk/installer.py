"""
SDK download and installation.

This module orchestrates installation of the SDK for a chosen API version:
1. Download the manifest and let the user choose an API version
2. Install API dependent files, in this order:
   tools -> build tools -> platform framework
3. Install API independent files (time zone database, assets), asking
   before refreshing them if an existing installation has all of them
4. Record the installed API version in the configuration

Every artifact is downloaded into a single scratch file, verified against
the SHA256 checksum published in the manifest and only then extracted.
A failed step aborts the run. Files extracted by earlier steps are kept,
but the recorded API version changes only after every step succeeded.
"""

import logging
import sys
import xml.etree.ElementTree as ElementTree
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Optional, TextIO

import requests

from apm.cli.progress import Progress
from apm.cli.utils import print_error, print_note, request_confirm
from apm.config.store import Config
from apm.core.download import download
from apm.core.exceptions import (
    ApmError,
    ArchiveExtractionError,
    ChecksumMismatchError,
    ChecksumMissingError,
    FilesystemError,
    ManifestStructureError,
    TransportError,
)
from apm.core.filesystem import (
    ScratchFile,
    add_executable_permissions,
    extract_all,
    extract_zip_entry,
    get_zip_entry,
    open_zip,
)
from apm.core.platform import detect_architecture
from apm.core.verification import compute_sha256
from apm.sdk.layout import File, Jar, SdkLayout
from apm.sdk.manifest import REPO_RAW_URL_PREFIX, download_manifest, select_version

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

ProgressFactory = Callable[[], Progress]


class SdkInstaller:
    """
    Interactive SDK installer.

    Args:
        config: Configuration that stores the installed API version
        layout: Installed SDK layout (defaults to the user's data directory)
        progress_factory: Creates a progress indicator for each step
        input_stream: Source of the user's answers (defaults to stdin)
        base_url: Repository URL prefix for the manifest and artifacts
        arch: Host architecture name used in the manifest

    Example:
        >>> installer = SdkInstaller(Config())
        >>> installer.install()
        0
    """

    def __init__(
        self,
        config: Config,
        layout: Optional[SdkLayout] = None,
        progress_factory: ProgressFactory = Progress,
        input_stream: Optional[TextIO] = None,
        base_url: str = REPO_RAW_URL_PREFIX,
        arch: Optional[str] = None,
    ):
        self.config = config
        self.layout = layout or SdkLayout()
        self.progress_factory = progress_factory
        self.input_stream = input_stream or sys.stdin
        self.base_url = base_url
        self.arch = arch or detect_architecture()

    # ------------------------------------------------------------------
    # Installation process
    # ------------------------------------------------------------------

    def install(self, installed_api: int = 0) -> int:
        """
        Run the installation.

        Args:
            installed_api: API version of the installed SDK, 0 if SDK
                isn't installed yet

        Returns:
            Exit status. Declining to override an installed SDK is a success.

        Raises:
            EOFError: If input ended while waiting for an answer
        """
        if installed_api:
            print(
                f"You have already installed SDK with API {installed_api}.\n"
                "Do you want to override it?"
            )
            if not request_confirm(False, self.input_stream):
                return EXIT_SUCCESS

        manifest = download_manifest(self.progress_factory(), self.base_url)
        if manifest is None:
            return EXIT_FAILURE

        api = select_version(manifest, self.input_stream)
        if api is None:
            return EXIT_FAILURE
        api_str = str(api)

        print(f"Installing SDK (API {api_str}):")
        try:
            self.layout.create_dirs()
        except OSError as e:
            print_error(f"Couldn't create SDK directories: {e}")
            return EXIT_FAILURE

        # Stores downloaded archives.
        with ScratchFile() as scratch:
            api_dependent_steps = (
                self.install_tools,
                self.install_build_tools,
                self.install_framework,
            )
            for step in api_dependent_steps:
                if not self._run_step(step, manifest, api_str, scratch):
                    return EXIT_FAILURE
                scratch.reopen()

            if self._should_install_api_independent_files(installed_api):
                if not self._run_step(self.install_tzdata, manifest, scratch):
                    return EXIT_FAILURE
                if not self._run_step(self.install_assets, manifest):
                    return EXIT_FAILURE

        if not self.config.set_installed_version(api):
            print_error("Couldn't preserve API version")
            return EXIT_FAILURE

        logger.info("SDK installed.")
        print("SDK installed.")
        if not installed_api:
            print_note("Use 'apm info' to see where the SDK files are installed")
        return EXIT_SUCCESS

    def _should_install_api_independent_files(self, installed_api: int) -> bool:
        """
        Ask before updating files that don't depend on API version.

        The question is asked only when updating an existing installation
        that has all of these files. Otherwise they are installed
        unconditionally.
        """
        if not installed_api or not self.layout.has_api_independent_files():
            return True

        print("Do you want to update API independent files?")
        if not request_confirm(True, self.input_stream):
            logger.debug("Keeping API independent files")
            return False

        print("Updating API independent files:")
        return True

    def _run_step(self, step: Callable, *args) -> bool:
        """
        Run an install step with its own progress indicator.

        A failure finishes the indicator with the error message.

        Returns:
            True if the step succeeded
        """
        progress = self.progress_factory()
        try:
            step(*args, progress)
        except ApmError as e:
            logger.debug(f"{step.__name__} failed: {e}")
            progress.finish(False, str(e))
            return False
        except OSError as e:
            logger.debug(f"{step.__name__} failed: {e}")
            progress.finish(False, f"File system error: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # API dependent files
    # ------------------------------------------------------------------

    def install_tools(
        self,
        manifest: ElementTree.Element,
        api: str,
        scratch: ScratchFile,
        progress: Progress,
    ) -> None:
        """
        Install architecture-specific tools into the tools directory.

        Raises:
            SdkInstallError: If tools aren't published for the host
                architecture or can't be downloaded/verified
            FilesystemError: If extraction or setting permissions fails
        """
        progress.text = "Preparing to download tools"
        progress.show()

        arch = self.arch
        node = manifest.find(f"tools/set[@api='{api}']/zip[.='{arch}']")
        if node is None:
            raise ManifestStructureError(
                f"Tools aren't available for architecture {arch}. "
                "Try another API version, if available"
            )

        checksum = self.get_sha256(node)
        if not checksum:
            raise ChecksumMissingError(
                f"Checksum of tools doesn't exist for architecture {arch}"
            )

        progress.text = "Downloading tools"
        url = f"{self.base_url}tools/api-{api}/{arch}.zip"
        self._fetch(scratch.stream, scratch.path, url, checksum, "tools", progress)

        with open_zip(scratch.path, "tools") as archive:
            for path in extract_all(archive, self.layout.tools_dir, progress):
                add_executable_permissions(path)

        progress.finish(True, f"Tools for {arch} installed")

    def install_build_tools(
        self,
        manifest: ElementTree.Element,
        api: str,
        scratch: ScratchFile,
        progress: Progress,
    ) -> None:
        """
        Install the JAR files listed in the build tools entry.

        Each child element of the entry names a path inside the archive;
        the file is extracted into the libraries directory.
        """
        progress.text = "Preparing to download build tools"
        progress.show()

        node = manifest.find(f"build-tools/zip[@api='{api}']")
        if node is None:
            raise ManifestStructureError("Couldn't find build tools in the manifest")

        url = node.get("url")
        if not url:
            raise ManifestStructureError("URL to build tools doesn't exist")

        checksum = self.get_sha256(node)
        if not checksum:
            raise ChecksumMissingError("Checksum of build tools doesn't exist")

        progress.set_determined(True)
        progress.text = "Downloading build tools"
        self._fetch(
            scratch.stream, scratch.path, url, checksum, "build tools", progress
        )

        # Opening takes a while, since the archive is large.
        progress.text = "Opening archive with build tools"
        with open_zip(scratch.path, "build tools") as archive:
            for child in node:
                tool_path = (child.text or "").strip()
                if not tool_path:
                    raise ArchiveExtractionError(
                        "Couldn't extract build tools: no path provided for a tool"
                    )

                entry = get_zip_entry(archive, tool_path)
                if entry is None:
                    raise ArchiveExtractionError(
                        "Couldn't extract build tools: "
                        f'failed to get ZIP entry "{tool_path}"'
                    )

                name = PurePosixPath(tool_path).name
                extract_zip_entry(
                    archive, entry, self.layout.jars_dir / name, progress, name
                )

        progress.finish(True, "Build tools installed")

    def install_framework(
        self,
        manifest: ElementTree.Element,
        api: str,
        scratch: ScratchFile,
        progress: Progress,
    ) -> None:
        """Install the platform framework JAR."""
        progress.text = "Preparing to download platform"
        progress.show()

        node = manifest.find(f"platforms/zip[@api='{api}']")
        if node is None:
            raise ManifestStructureError("Couldn't find platform in the manifest")

        url = node.get("url")
        if not url:
            raise ManifestStructureError("URL to platform doesn't exist")

        checksum = self.get_sha256(node)
        if not checksum:
            raise ChecksumMissingError("Checksum of platform doesn't exist")

        framework_node = node.find("framework")
        framework_path = (
            (framework_node.text or "").strip() if framework_node is not None else ""
        )
        if not framework_path:
            raise ManifestStructureError("Android framework path doesn't exist")

        progress.set_determined(True)
        progress.text = "Downloading platform"
        self._fetch(scratch.stream, scratch.path, url, checksum, "platform", progress)

        progress.text = "Opening archive with Android framework"
        with open_zip(scratch.path, "Android framework") as archive:
            entry = get_zip_entry(archive, framework_path)
            if entry is None:
                raise ArchiveExtractionError(
                    "Couldn't extract Android framework: "
                    f'failed to get ZIP entry "{framework_path}"'
                )
            extract_zip_entry(
                archive,
                entry,
                self.layout.get_jar_path(Jar.FRAMEWORK),
                progress,
                PurePosixPath(framework_path).name,
            )

        progress.finish(True, "Android framework installed")

    # ------------------------------------------------------------------
    # API independent files
    # ------------------------------------------------------------------

    def install_tzdata(
        self,
        manifest: ElementTree.Element,
        scratch: ScratchFile,
        progress: Progress,
    ) -> None:
        """Install the latest time zone database published in the manifest."""
        progress.text = "Preparing to download time zone database"
        progress.show()

        node = manifest.find("tzdata/zip[@latest='true']")
        if node is None:
            raise ManifestStructureError(
                "Couldn't find the latest version of time zone database "
                "in the manifest"
            )

        version = (node.text or "").strip()
        if not version:
            raise ManifestStructureError(
                "Version of time zone database isn't specified"
            )

        checksum = self.get_sha256(node)
        if not checksum:
            raise ChecksumMissingError("Checksum of time zone database doesn't exist")

        progress.text = "Downloading time zone database"
        url = f"{self.base_url}tzdata/{version}.zip"
        self._fetch(
            scratch.stream,
            scratch.path,
            url,
            checksum,
            "time zone database",
            progress,
        )

        output_path = self.layout.get_file_path(File.TZDATA)
        name = output_path.name
        with open_zip(scratch.path, "time zone database") as archive:
            entry = get_zip_entry(archive, name)
            if entry is None:
                raise ArchiveExtractionError(
                    "Couldn't install time zone database: "
                    f'failed to get ZIP entry "{name}"'
                )
            extract_zip_entry(archive, entry, output_path, progress, name)

        progress.finish(True, f"Time zone database {version} installed")

    def install_assets(self, manifest: ElementTree.Element, progress: Progress) -> None:
        """
        Download assets listed in the manifest.

        Assets aren't archived, each one is downloaded straight to its
        destination. A destination left by a failed or interrupted
        download is removed.

        Raises:
            ManifestStructureError: If an asset isn't one of the known files
        """
        progress.text = "Preparing to download assets"
        progress.show()

        nodes = manifest.findall("assets/file")
        if not nodes:
            raise ManifestStructureError("No assets found in the manifest")

        # File name -> (output path, friendly name).
        assets = {}
        for file, friendly_name in (
            (File.DEBUG_KEYSTORE, "Debug keystore"),
            (File.PROJECT_TEMPLATE, "Project template"),
        ):
            path = self.layout.get_file_path(file)
            assets[path.name] = (path, friendly_name)

        for node in nodes:
            # Hidden by finish() at the end of the previous iteration.
            progress.show()

            filename = (node.text or "").strip()
            if not filename:
                raise ManifestStructureError("An asset doesn't have a name")

            checksum = self.get_sha256(node)
            if not checksum:
                raise ChecksumMissingError(f"Asset {filename} doesn't have checksum")

            if filename not in assets:
                raise ManifestStructureError(
                    f"Couldn't install asset {filename}: unknown asset"
                )
            output_path, friendly_name = assets[filename]

            try:
                output = open(output_path, "wb")
            except OSError as e:
                raise FilesystemError(
                    f"Couldn't install asset {filename}: "
                    f'failed to open output file "{output_path}" ({e.strerror or e})'
                ) from e

            progress.text = f"Downloading {filename}"
            url = f"{self.base_url}assets/{filename}"
            try:
                self._fetch(
                    output,
                    output_path,
                    url,
                    checksum,
                    f"asset {filename}",
                    progress,
                    append_size=False,
                )
            except BaseException:
                output_path.unlink(missing_ok=True)
                raise

            progress.finish(True, f"{friendly_name} downloaded")

    # ------------------------------------------------------------------
    # Helper functions
    # ------------------------------------------------------------------

    @staticmethod
    def get_sha256(node: ElementTree.Element) -> str:
        """Get value of the sha256 attribute, empty string if it's absent."""
        return node.get("sha256", "")

    @staticmethod
    def check_sha256(
        file_path: Path, checksum: str, progress: Progress, subject: str
    ) -> None:
        """
        Compare checksum of a file with the published one.

        Comparison is case-sensitive. A file that can't be read never
        matches.

        Raises:
            ChecksumMismatchError: If checksums differ
        """
        progress.set_determined(False)
        progress.text = "Calculating checksum"

        actual = compute_sha256(file_path)
        if actual != checksum:
            logger.debug(
                f"Checksum mismatch for {subject}: expected {checksum}, got {actual}"
            )
            raise ChecksumMismatchError(
                f"Couldn't install {subject}: invalid checksum. Try to set up SDK again"
            )
        logger.debug(f"Checksum of {subject} verified")

    def _fetch(
        self,
        output: BinaryIO,
        file_path: Path,
        url: str,
        checksum: str,
        subject: str,
        progress: Progress,
        append_size: bool = True,
    ) -> None:
        """
        Download url into output, close it and verify the checksum.

        Raises:
            TransportError: On network errors or if status isn't 200
            ChecksumMismatchError: If the downloaded file is corrupted
        """
        try:
            response = download(output, url, progress, append_size)
        except requests.RequestException as e:
            raise TransportError(f"Couldn't download {subject}. {e}") from e
        finally:
            # Checksum calculation and extraction reopen the file.
            output.close()

        if response.status_code != requests.codes.ok:
            raise TransportError(
                f"Couldn't download {subject} (status code {response.status_code})"
            )

        self.check_sha256(file_path, checksum, progress, subject)
