"""Project directory access and export."""
from codelink.core.project.directory import (
    DirectoryAccessor,
    LocalDirectoryAccessor,
    build_context_export,
    file_extension,
    save_context_file,
    should_skip,
)

__all__ = [
    "DirectoryAccessor",
    "LocalDirectoryAccessor",
    "build_context_export",
    "file_extension",
    "save_context_file",
    "should_skip",
]
