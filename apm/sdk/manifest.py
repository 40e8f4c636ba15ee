"""
Remote SDK manifest resolution.

The manifest is an XML document listing available API versions and,
for each of them, where to download tools, build tools and platform
files, together with their SHA256 checksums:

    <manifest>
      <tools>
        <set api="28"><zip sha256="...">x86_64</zip>...</set>
      </tools>
      <build-tools>
        <zip api="28" url="..." sha256="..."><d8>lib/d8.jar</d8>...</zip>
      </build-tools>
      <platforms>
        <zip api="28" url="..." sha256="..."><framework>android.jar</framework></zip>
      </platforms>
      <tzdata><zip latest="true" sha256="...">2021a</zip></tzdata>
      <assets><file sha256="...">debug.jks</file>...</assets>
    </manifest>
"""

import logging
import sys
import xml.etree.ElementTree as ElementTree
from typing import List, Optional, TextIO

import requests

from apm.cli.progress import Progress
from apm.cli.utils import print_error, request_number

logger = logging.getLogger(__name__)

REPO_RAW_URL_PREFIX = "https://github.com/lem0nez/apm/raw/data/"
MANIFEST_FILE_NAME = "manifest.xml"
ROOT_TAG = "manifest"


def download_manifest(
    progress: Progress, base_url: str = REPO_RAW_URL_PREFIX
) -> Optional[ElementTree.Element]:
    """
    Download and parse the manifest.

    Failures are printed to stderr. There are no retries.

    Args:
        progress: Indicator shown while downloading (hidden on failure)
        base_url: Repository URL prefix

    Returns:
        Root element of the manifest, or None on failure
    """
    url = base_url + MANIFEST_FILE_NAME
    progress.text = "Downloading manifest"
    progress.show()
    logger.debug(f"Downloading manifest from {url}")

    failure_msg = "Couldn't download the manifest file"
    try:
        response = requests.get(url)
    except requests.RequestException as e:
        progress.hide()
        print_error(f"{failure_msg}. {e}")
        return None

    if response.status_code != requests.codes.ok:
        progress.hide()
        print_error(f"{failure_msg} (status code {response.status_code})")
        return None

    try:
        root = ElementTree.fromstring(response.content)
    except ElementTree.ParseError as e:
        progress.hide()
        print_error(f"Couldn't parse the manifest file. {e}")
        return None

    progress.hide()
    logger.debug("Manifest downloaded")
    return root


def available_versions(manifest: ElementTree.Element) -> List[int]:
    """
    Get API versions that have tools published.

    Values that aren't positive integers are ignored.

    Returns:
        Sorted distinct versions
    """
    if manifest.tag != ROOT_TAG:
        logger.debug(f"Unexpected manifest root element: {manifest.tag}")
        return []

    versions = set()
    for tool_set in manifest.iterfind("tools/set[@api]"):
        try:
            api = int(tool_set.get("api"))
        except ValueError:
            continue
        if api > 0:
            versions.add(api)
    return sorted(versions)


def select_version(
    manifest: ElementTree.Element, input_stream: Optional[TextIO] = None
) -> Optional[int]:
    """
    Let the user choose an API version.

    If only one version is available it's chosen without asking.

    Args:
        manifest: Root element of the manifest
        input_stream: Source of the user's answer (defaults to stdin)

    Returns:
        Chosen version, or None if no versions are available

    Raises:
        EOFError: If input ended before a valid version was entered
    """
    versions = available_versions(manifest)

    if not versions:
        print_error("No available API versions found")
        return None
    # TODO: ask for confirmation once the manifest publishes several versions.
    if len(versions) == 1:
        logger.debug(f"Only API {versions[0]} is available, selecting it")
        return versions[0]

    print("Choose API version:")
    for num, api in enumerate(versions, 1):
        print(f"  {num}. API {api}")

    return request_number(
        versions,
        "version> ",
        input_stream or sys.stdin,
        wrong_choice_message="Wrong version! Try again",
    )
