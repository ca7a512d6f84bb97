"""Text rendered into the composer: file blocks and the project context message."""
from __future__ import annotations

import re
import time
from typing import Iterable, Optional

from codelink.common.models import NodeKind, ProjectNode

# Hidden marker placed before each inserted file block. It is stripped before
# anything is written, so it only ever exists inside a pending write.
FILE_MARKER_RE = re.compile(r"<!-- file-content-(.*?)-\d+ -->")
ANY_MARKER_RE = re.compile(r"<!-- file-content-.*?-->")

LANGUAGES = {
    ".js": "javascript",
    ".ts": "typescript",
    ".jsx": "jsx",
    ".tsx": "tsx",
    ".html": "html",
    ".css": "css",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".json": "json",
    ".md": "markdown",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".xml": "xml",
    ".sh": "bash",
    ".bat": "batch",
}

KEY_FILES = ("package.json", "requirements.txt", "main.py", "index.js", "app.js", "README.md")


def language_for_extension(extension: str) -> str:
    return LANGUAGES.get((extension or "").lower(), "")


def file_header(name: str) -> str:
    return f"// File: {name}"


def format_file_content(
    name: str, extension: str, content: str, timestamp_ms: Optional[int] = None
) -> str:
    """Fenced block for one file, preceded by its delivery marker."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    marker = f"<!-- file-content-{name}-{timestamp_ms} -->"
    return (
        f"{marker}\n"
        f"```{language_for_extension(extension)}\n"
        f"{file_header(name)}\n"
        f"{content}\n"
        f"```"
    )


def marked_file_name(text: str) -> Optional[str]:
    match = FILE_MARKER_RE.search(text or "")
    return match.group(1) if match else None


def marked_file_names(text: str) -> list[str]:
    return FILE_MARKER_RE.findall(text or "")


def strip_markers(text: str) -> str:
    return ANY_MARKER_RE.sub("", text or "")


def generate_structure_text(structure: Iterable[ProjectNode], indent: str = "") -> str:
    text = ""
    for node in structure:
        if node.kind is NodeKind.DIRECTORY:
            text += f"{indent}📁 {node.name}/\n"
            if node.children:
                text += generate_structure_text(node.children, indent + "  ")
        else:
            text += f"{indent}📄 {node.name}\n"
    return text


def project_languages(paths: Iterable[str]) -> list[str]:
    """Distinct language labels for the project's extensions, first-seen order."""
    languages: list[str] = []
    for path in paths:
        name = path.rsplit("/", 1)[-1]
        if "." not in name:
            continue
        language = language_for_extension("." + name.rsplit(".", 1)[-1])
        if language and language not in languages:
            languages.append(language)
    return languages


def key_files(paths: Iterable[str]) -> list[str]:
    return [name for name in (p.rsplit("/", 1)[-1] for p in paths) if name in KEY_FILES]


def generate_initial_context(
    project_name: str, structure: list[ProjectNode], paths: list[str]
) -> str:
    """Instruction message that primes the assistant with the project layout."""
    languages = project_languages(paths)
    main_files = key_files(paths)
    key_line = f"- **Key Files:** {', '.join(main_files)}\n" if main_files else ""
    return (
        "# 🔗 CodeLinkGPT - Project Context\n"
        "\n"
        "You are now in a live coding environment with access to the project files.\n"
        "Your Name is **CodeLinkGPT** and you are here to assist with code-related tasks.\n"
        "You can request files, ask questions about the code, and get help with debugging.\n"
        "Read and understand the instructions carefully before proceeding.\n"
        "\n"
        "## 📝 How To Request Files\n"
        "\n"
        "You can request files in multiple ways:\n"
        "\n"
        "**Option 1:** Use the **@filename.ext** syntax directly\n"
        "- Example: @index.js or @src/components/App.js\n"
        "\n"
        "**Option 2:** Make a natural language request\n"
        '- Example: "Show me the manifest.json file" or "I need to see package.json"\n'
        "\n"
        "**Option 3:** Use the filename in your question\n"
        '- Example: "What does the App.js component do?" or '
        '"How is the API call in api.js structured?"\n'
        "\n"
        f'I\'m working on a project called **"{project_name}"**. '
        "Here's what you need to know:\n"
        "\n"
        "## 📊 Project Overview\n"
        f"- **Total Files:** {len(paths)}\n"
        f"- **Main Technologies:** {', '.join(languages)}\n"
        f"{key_line}"
        "\n"
        "## 📁 Project Structure\n"
        "```\n"
        f"{generate_structure_text(structure)}"
        "```\n"
        "\n"
        'If You understand the instructions, please respond with "CodeLinkGPT is Ready" '
        "and I will assist you with your coding tasks."
    )
