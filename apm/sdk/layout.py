"""
On-disk layout of the installed SDK.

    <root>/
        bin/        aapt2, zipalign (executable)
        lib/        apksigner.jar, d8.jar, android.jar
        debug.jks
        project-template.zip
        tzdata

Every path is derived from a fixed enumeration, nothing is configurable
apart from the root directory.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from apm.core.directory import get_data_dir

TOOLS_SUBDIR_NAME = "bin"
JARS_SUBDIR_NAME = "lib"


class Tool(Enum):
    # Compiles and packages APK's resources.
    AAPT2 = "aapt2"
    # Aligns an APK file to reduce app's memory usage.
    ZIPALIGN = "zipalign"


class Jar(Enum):
    APKSIGNER = "apksigner.jar"
    # Compiles Java bytecode to DEX bytecode.
    D8 = "d8.jar"
    # Bootstrap class path for the Java compiler.
    FRAMEWORK = "android.jar"


class File(Enum):
    # Java KeyStore to sign an APK for debugging.
    DEBUG_KEYSTORE = "debug.jks"
    PROJECT_TEMPLATE = "project-template.zip"
    # Required by aapt2.
    TZDATA = "tzdata"


class SdkLayout:
    """
    Resolves paths of installed SDK files.

    The getters don't check that a file exists, callers decide whether
    absence is fatal.

    Args:
        root: SDK root directory. Defaults to the user's data directory.
    """

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else get_data_dir()

    @property
    def tools_dir(self) -> Path:
        return self.root / TOOLS_SUBDIR_NAME

    @property
    def jars_dir(self) -> Path:
        return self.root / JARS_SUBDIR_NAME

    def get_tool_path(self, tool: Tool) -> Path:
        return self.tools_dir / tool.value

    def get_jar_path(self, jar: Jar) -> Path:
        return self.jars_dir / jar.value

    # Library is the generic name for the JAR artifacts.
    get_library_path = get_jar_path

    def get_file_path(self, file: File) -> Path:
        return self.root / file.value

    def all_paths(self) -> List[Path]:
        """Paths of every file a complete installation has."""
        return (
            [self.get_tool_path(t) for t in Tool]
            + [self.get_jar_path(j) for j in Jar]
            + [self.get_file_path(f) for f in File]
        )

    def missing_files(self) -> List[Path]:
        return [p for p in self.all_paths() if not p.is_file()]

    def has_api_independent_files(self) -> bool:
        """Check whether time zone database and assets are all present."""
        return all(self.get_file_path(f).is_file() for f in File)

    def create_dirs(self) -> None:
        """
        Create the root, tools and libraries directories.

        Raises:
            OSError: If a directory can't be created
        """
        for path in (self.root, self.tools_dir, self.jars_dir):
            path.mkdir(parents=True, exist_ok=True)
