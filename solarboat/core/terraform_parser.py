"""
Terraform definition scanning.

Two strategies are available behind the same interface:

- LineParser (default): naive line-oriented text matching. It does not
  understand HCL; strings, comments and nested braces can fool it.
- HclParser: parses each file with python-hcl2 and falls back to the
  line strategy for files that do not parse.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List

import hcl2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParserMarkers:
    """
    Lexical markers used to recognise Terraform constructs.

    Attributes:
        file_suffix: Suffix identifying a module definition file
        module_block: Token opening a module block
        source: Attribute name holding a module source
        config_block: Opener of the top-level configuration block
        backend: Token declaring a backend inside the configuration block
    """
    file_suffix: str = ".tf"
    module_block: str = "module"
    source: str = "source"
    config_block: str = "terraform {"
    backend: str = "backend "


class LineParser:
    """
    Line-based scanner for module sources and backend declarations.

    Tracks a single "inside module block" flag: a module opener sets it
    and any line containing a closing brace clears it.
    """

    name = "line"

    def __init__(self, markers: ParserMarkers = ParserMarkers()):
        self.markers = markers
        self._source_re = re.compile(
            r'(?<![\w-])' + re.escape(markers.source) + r'\s*=\s*"([^"]*)"'
        )

    def has_backend_config(self, content: str) -> bool:
        """
        Check whether one file's content declares a backend.

        Args:
            content: Full text of a definition file

        Returns:
            True if both the configuration block opener and the backend
            token appear anywhere in the content
        """
        return self.markers.config_block in content and self.markers.backend in content

    def find_module_sources(self, content: str) -> List[str]:
        """
        Extract raw source literals from module blocks.

        Args:
            content: Full text of a definition file

        Returns:
            Source strings in file order, unresolved
        """
        sources = []
        in_module = False

        for line in content.splitlines():
            if not in_module and self._opens_module_block(line):
                in_module = True

            if not in_module:
                continue

            match = self._source_re.search(line)
            if match:
                sources.append(match.group(1))

            if "}" in line:
                in_module = False

        return sources

    def _opens_module_block(self, line: str) -> bool:
        stripped = line.strip()
        token = self.markers.module_block
        if not stripped.startswith(token) or len(stripped) == len(token):
            return False
        return stripped[len(token)] in ' \t"' and "{" in stripped


class HclParser:
    """
    python-hcl2 backed scanner.

    Only the top-level configuration block and module blocks are read.
    Unparseable files are handed to the line strategy.
    """

    name = "hcl"

    def __init__(self, markers: ParserMarkers = ParserMarkers()):
        self.markers = markers
        self._fallback = LineParser(markers)
        self._config_block = markers.config_block.replace("{", "").strip()
        self._backend = markers.backend.strip()

    def has_backend_config(self, content: str) -> bool:
        try:
            parsed = hcl2.loads(content)
        except Exception as e:
            logger.warning(f"HCL parse error, using line scan for backend: {e}")
            return self._fallback.has_backend_config(content)

        for block in parsed.get(self._config_block, []):
            if isinstance(block, dict) and self._backend in block:
                return True
        return False

    def find_module_sources(self, content: str) -> List[str]:
        try:
            parsed = hcl2.loads(content)
        except Exception as e:
            logger.warning(f"HCL parse error, using line scan for sources: {e}")
            return self._fallback.find_module_sources(content)

        sources = []
        for block in parsed.get(self.markers.module_block, []):
            if not isinstance(block, dict):
                continue
            for body in block.values():
                if not isinstance(body, dict):
                    continue
                source = self._unwrap(body.get(self.markers.source))
                if isinstance(source, str):
                    sources.append(source.strip('"'))
        return sources

    @staticmethod
    def _unwrap(value: Any) -> Any:
        """Unwrap a value that may be wrapped in a single-element list by hcl2."""
        if isinstance(value, list) and len(value) == 1:
            return value[0]
        return value


PARSERS = {
    LineParser.name: LineParser,
    HclParser.name: HclParser,
}


def get_parser(name: str = "line", markers: ParserMarkers = ParserMarkers()):
    """
    Build a parser strategy by name.

    Raises:
        ValueError: If the name is not a known strategy
    """
    try:
        parser_cls = PARSERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown parser '{name}' (expected one of: {', '.join(sorted(PARSERS))})"
        )
    return parser_cls(markers)
