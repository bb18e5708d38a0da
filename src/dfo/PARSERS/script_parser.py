"""
Parser for entrypoint shell scripts, extracting the external commands they invoke.
"""
import re
from typing import Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..RUNNERS.environment_probe import RuntimeEnvironmentProbe

# Keywords, builtins and operators a shell interprets itself.
SHELL_BUILTINS = (
    "exit", "return", "set", "unset", "export",
    "if", "then", "else", "elif", "fi",
    "gt", "lt", "ge", "le", "eq", "ne",
    "case", "esac", "for", "select", "while",
    "until", "do", "done", "in", "function",
    "time",
    "{", "}", "[[", "]]",
    "!", "|", "&", ";", "=",
)

# Barewords and single/double dash flags form one lexical class.
# Word boundaries are ASCII only, so a non-ASCII letter ends a token.
TOKEN_PATTERN = re.compile(r'\b(-{1,2}[a-zA-Z_][a-zA-Z0-9_]*|[a-zA-Z_][a-zA-Z0-9_]*)\b', re.ASCII)

ENV_NAME_PATTERN = re.compile(r'^[A-Z_]+$')


def already_seen(seen: Iterable[str], token: str) -> bool:
    """
    Membership test used for both the builtin filter and deduplication.

    Quirk: an all-uppercase token (``PATH``, ``APP_HOME``) counts as seen as
    soon as ``seen`` is non-empty, so environment-variable-style names never
    make it into the output.
    """
    seen = list(seen)
    if not seen:
        return False
    if ENV_NAME_PATTERN.match(token):
        return True
    return token in seen


class ScriptCommandExtractor:
    """
    Extracts the ordered, deduplicated command names a shell script invokes.
    """
    def __init__(self,
                 probe: Optional["RuntimeEnvironmentProbe"] = None,
                 builtins: Iterable[str] = SHELL_BUILTINS):
        """
        :param probe: Used to drop tokens that are not executables on the search path.
                      When None, every non-builtin, non-flag token is kept.
        :param builtins: Tokens that are never commands.
        """
        self.probe = probe
        self.builtins = tuple(builtins)

    def parse(self, script_path: str) -> List[str]:
        """
        Extracts commands from a script on disk.

        :param script_path: Path to the script.
        :return: Command names in order of first appearance.
        """
        with open(script_path, 'r', errors='replace') as f:
            return self.extract_lines(f)

    def parse_from_string(self, content: str) -> List[str]:
        """
        Extracts commands from script text.

        :param content: Script source.
        :return: Command names in order of first appearance.
        """
        return self.extract_lines(content.splitlines())

    def extract_lines(self, lines: Iterable[str]) -> List[str]:
        commands: List[str] = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            for token in self.tokenize(line):
                if not already_seen(commands, token) and self._is_candidate(token):
                    commands.append(token)
        return commands

    @staticmethod
    def tokenize(line: str) -> List[str]:
        """
        Splits a line into bareword and flag tokens.

        Note that a flag preceded by whitespace loses its dashes (``--code``
        yields ``code``), because the pattern needs a word boundary before
        the first dash.
        """
        return TOKEN_PATTERN.findall(line)

    def _is_candidate(self, token: str) -> bool:
        if already_seen(self.builtins, token) or token.startswith('-'):
            return False
        if self.probe is not None and not self.probe.is_executable(token):
            return False
        return True
