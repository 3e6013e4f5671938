"""Filename extension -> language lookups."""

from __future__ import annotations

# Syntax highlighter language ids
HIGHLIGHT_LANGUAGES = {
    "js": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "xml": "xml",
    "sql": "sql",
    "sh": "bash",
    "md": "markdown",
}

DISPLAY_NAMES = {
    "js": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "c": "C",
    "cs": "C#",
    "php": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "json": "JSON",
    "xml": "XML",
    "sql": "SQL",
    "sh": "Shell",
    "md": "Markdown",
}


def extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def highlight_language(filename: str) -> str:
    return HIGHLIGHT_LANGUAGES.get(extension(filename), "text")


def display_language(filename: str) -> str:
    return DISPLAY_NAMES.get(extension(filename), "Text")
