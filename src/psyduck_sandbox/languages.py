# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

"""Catalog of languages known to the IDE and the one the sandbox executes."""

import platform

from pydantic import BaseModel, Field

EXECUTABLE_LANGUAGE = "python"

_ALIASES = {
    "python": EXECUTABLE_LANGUAGE,
    "python3": EXECUTABLE_LANGUAGE,
    "py": EXECUTABLE_LANGUAGE,
}


class LanguageInfo(BaseModel):
    """Describes a language offered by the editor.

    Attributes:
        language: Canonical language name.
        version: Runtime version string shown to learners.
        extensions: File extensions associated with the language.
        template: Starter program for a new file.
        executable: Whether the sandbox can run programs in this language.
    """

    language: str
    version: str
    extensions: list[str]
    template: str
    executable: bool = False
    examples: dict[str, str] = Field(default_factory=dict)


TEMPLATES: dict[str, str] = {
    "python": "print('Hello, World!')\n",
    "javascript": "console.log('Hello, World!')\n",
    "java": (
        "public class Main {\n"
        "  public static void main(String[] args) {\n"
        '    System.out.println("Hello, World!");\n'
        "  }\n"
        "}\n"
    ),
    "cpp": '#include <iostream>\nint main(){ std::cout << "Hello, World!"; }\n',
}


def list_languages() -> list[LanguageInfo]:
    """Return the languages offered by the editor; only Python is executable."""
    return [
        LanguageInfo(
            language="python",
            version=platform.python_version(),
            extensions=["py"],
            template=TEMPLATES["python"],
            executable=True,
            examples={"workspace": "from .lib import add\n\nprint(add(2, 3))\n"},
        ),
        LanguageInfo(language="javascript", version="18.x", extensions=["js"], template=TEMPLATES["javascript"]),
        LanguageInfo(language="java", version="17", extensions=["java"], template=TEMPLATES["java"]),
        LanguageInfo(language="cpp", version="C++17", extensions=["cpp"], template=TEMPLATES["cpp"]),
    ]


def get_language_template(language: str | None) -> str:
    """Return the starter template for a language, or an empty string if unknown."""
    if not language:
        return ""
    key = language.strip().lower()
    return TEMPLATES.get(_ALIASES.get(key, key), "")


def normalize_language(language: str) -> str:
    """Map a requested language to the executable language.

    Raises:
        ValueError: If the language is not executed by this sandbox.
    """
    key = language.strip().lower() if isinstance(language, str) else ""
    if key not in _ALIASES:
        raise ValueError(f"Only {EXECUTABLE_LANGUAGE} execution is supported currently (got {language!r})")
    return _ALIASES[key]
