"""Shell syntax parsing on top of bashlex."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union

import bashlex
from bashlex import ast

# Word parts whose value only exists once the shell runs something.
_DYNAMIC_PARTS = frozenset({"commandsubstitution", "processsubstitution"})

# Redirect operators whose target is not a file (heredoc delimiters and strings).
_NON_FILE_REDIRECTS = frozenset({"<<", "<<-", "<<<"})

OVERWRITE_OPERATORS = frozenset({">", ">|", "&>", ">&"})

# bashlex drives one module-level yacc parser for every call.
_PARSE_LOCK = threading.Lock()


@dataclass(frozen=True)
class Invocation:
    """A simple command: its name and arguments.

    An argument is ``None`` when its text is produced at run time (command or
    process substitution) and so cannot be inspected.
    """

    name: str
    args: tuple[str | None, ...]


@dataclass(frozen=True)
class Redirection:
    """A redirection whose target is a literal file name."""

    op: str
    target: str

    @property
    def overwrites(self) -> bool:
        return self.op in OVERWRITE_OPERATORS


Element = Union[Invocation, Redirection]


class CommandParseError(ValueError):
    """Raised when a command line cannot be parsed."""


def parse_command(command: str) -> list[ast.node]:
    """Parse *command* into bashlex syntax trees.

    Some valid bash is beyond bashlex: ``time cmd`` and ``case ... esac``
    raise ``NotImplementedError``.  Those commands surface here as parse
    errors, so the caller falls back to pattern matching for them rather
    than applying structural rules.

    Raises:
        CommandParseError: If bashlex rejects or cannot handle the input.
    """
    try:
        with _PARSE_LOCK:
            return bashlex.parse(command)
    except Exception as exc:
        # bashlex raises ParsingError for bad syntax, NotImplementedError for
        # unsupported constructs and plain internal errors on odd input.
        raise CommandParseError(f"{type(exc).__name__}: {exc}") from exc


def literal_word(word: ast.node) -> str | None:
    """Return the literal text of a word node, or ``None`` if it is dynamic."""
    if _contains_dynamic_part(word):
        return None
    return word.word


def _contains_dynamic_part(node: ast.node) -> bool:
    for part in getattr(node, "parts", None) or ():
        if part.kind in _DYNAMIC_PARTS or _contains_dynamic_part(part):
            return True
    return False


def iter_elements(trees: list[ast.node]) -> Iterator[Element]:
    """Yield every command invocation and file redirection in tree order.

    Pipelines, lists, compound commands and substitutions are descended into,
    so ``echo $(rm -rf x)`` yields both ``echo`` and ``rm``.
    """
    for tree in trees:
        yield from _walk(tree)


def _walk(node: ast.node) -> Iterator[Element]:
    if node.kind == "command":
        invocation = _invocation(node)
        if invocation is not None:
            yield invocation
    elif node.kind == "redirect":
        redirection = _redirection(node)
        if redirection is not None:
            yield redirection

    for child in _children(node):
        yield from _walk(child)


def _children(node: ast.node) -> list[ast.node]:
    children: list[ast.node] = []
    seen: set[int] = set()
    for attr in ("parts", "list", "redirects"):
        value = getattr(node, attr, None)
        if isinstance(value, list):
            for child in value:
                if isinstance(child, ast.node) and id(child) not in seen:
                    seen.add(id(child))
                    children.append(child)
    for attr in ("command", "output"):
        value = getattr(node, attr, None)
        if isinstance(value, ast.node) and id(value) not in seen:
            seen.add(id(value))
            children.append(value)
    return children


def _invocation(node: ast.node) -> Invocation | None:
    words = [part for part in node.parts if part.kind == "word"]
    if not words:
        return None
    name = literal_word(words[0])
    if not name:
        return None
    return Invocation(name=name, args=tuple(literal_word(word) for word in words[1:]))


def _redirection(node: ast.node) -> Redirection | None:
    output = node.output
    # fd duplication such as 2>&1 carries an int, not a word
    if not isinstance(output, ast.node) or output.kind != "word":
        return None
    if node.type in _NON_FILE_REDIRECTS:
        return None
    target = literal_word(output)
    if not target:
        return None
    return Redirection(op=node.type, target=target)
