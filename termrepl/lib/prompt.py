"""
Prompt, banner and help text.

Features:
- Prompt templates with {user}, {host} and {dir} placeholders
- Welcome banner with the user's name and the runtime version
- Example statements used for the placeholder and the `help` command
"""

import getpass
import random
import socket
from pathlib import Path
from typing import Final
from rich.text import Text
from termrepl.lib.styles import STYLE_CODE, STYLE_FAINT

EXAMPLE_STATEMENTS: Final[list[str]] = [
    "sum(range(10))",
    "[n * n for n in range(5)]",
    "sorted({'b': 2, 'a': 1}.items())",
    "'termrepl'.upper()",
    "import math; math.sqrt(2)",
    "name = input('who are you? ')",
    "{c: ord(c) for c in 'abc'}",
    "max([3, 1, 4, 1, 5], key=lambda n: -n)",
    "list(zip('abc', range(3)))",
    "divmod(17, 5)",
]

PLACEHOLDER_HINT: Final[str] = " # just something you can run... (tab + enter)"


def username_get() -> str:
    try:
        return getpass.getuser()
    except Exception:
        return "there"


def prompt_render(template: str) -> str:
    """Expand the prompt template.

    Args:
        template: Prompt text with optional {user}, {host} and {dir} fields

    Returns:
        str: The prompt; the template unchanged if it does not format
    """
    cwd: Path = Path.cwd()
    home: Path = Path.home()
    directory: str = str(cwd)
    if cwd == home or home in cwd.parents:
        directory = "~" + directory[len(str(home)) :]
    try:
        return template.format(
            user=username_get(), host=socket.gethostname(), dir=directory
        )
    except (KeyError, IndexError, ValueError):
        return template


def placeholder_pick(rng: random.Random | None = None) -> str:
    """A random example statement, shown while the first line is empty."""
    chooser: random.Random = rng or random.Random()
    return chooser.choice(EXAMPLE_STATEMENTS) + PLACEHOLDER_HINT


def welcome_lines(version: str) -> list[Text]:
    return [
        Text(f"Hello {username_get()}, welcome to termrepl ({version})!"),
        Text("Type 'quit' when you're done, 'help' if you get lost!"),
    ]


def help_lines(prompt: str, rng: random.Random | None = None) -> list[Text]:
    """Usage hints plus a handful of example statements."""
    chooser: random.Random = rng or random.Random()
    lines: list[Text] = [
        Text("Try typing something along the lines of:\n", style=STYLE_FAINT),
        Text.assemble("  ", prompt, ("today = __import__('datetime').date.today()\n", STYLE_CODE)),
        Text("Then try printing the result with:\n", style=STYLE_FAINT),
        Text.assemble("  ", prompt, ("today\n", STYLE_CODE)),
        Text("Here some other valid examples:\n", style=STYLE_FAINT),
    ]
    for statement in chooser.sample(EXAMPLE_STATEMENTS, k=5):
        lines.append(Text.assemble("  ", prompt, (statement + "\n", STYLE_CODE)))
    return lines
