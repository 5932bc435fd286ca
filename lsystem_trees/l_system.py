import logging
from typing import Dict, Iterator, Optional

from lsystem_trees.errors import MalformedParameter

logger = logging.getLogger(__name__)


class LSystemGenerator:
    """
    Rewriting grammar for tree strings.

    Each generation replaces every symbol by its production, symbols without
    a production (or with an empty one) are copied unchanged.
    """

    def __init__(self, rules: Optional[Dict[str, str]] = None):
        """
        Args:
            rules: Initial production rules (e.g. {"A": "f[+A][-A]"})
        """
        self.rules: Dict[str, str] = {}
        for symbol, replacement in (rules or {}).items():
            self.add_rule(symbol, replacement)

    def add_rule(self, symbol: str, replacement: str) -> None:
        """Insert or overwrite the production for a single symbol."""
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise MalformedParameter(f"rule symbol must be a single character, got {symbol!r}")
        self.rules[symbol] = replacement

    def clear_rules(self) -> None:
        self.rules.clear()

    def copy(self) -> "LSystemGenerator":
        return LSystemGenerator(self.rules)

    def _rewrite(self, current: str) -> str:
        return "".join(self.rules.get(char) or char for char in current)

    def generate(self, axiom: str, iterations: int) -> str:
        """Apply the production rules `iterations` times to `axiom`."""
        if iterations < 0:
            raise MalformedParameter(f"iterations must be >= 0, got {iterations}")

        current = axiom
        for _ in range(iterations):
            current = self._rewrite(current)
        logger.debug("Expanded %r over %d iterations to %d symbols", axiom, iterations, len(current))
        return current

    def iterate(self, axiom: str, iterations: int) -> Iterator[str]:
        """Yield the string of every generation from 0 up to `iterations`."""
        if iterations < 0:
            raise MalformedParameter(f"iterations must be >= 0, got {iterations}")

        current = axiom
        yield current
        for _ in range(iterations):
            current = self._rewrite(current)
            yield current

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        return f"LSystemGenerator(rules={self.rules!r})"
