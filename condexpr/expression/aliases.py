"""
Field name aliasing.

Expressions may refer to fields through alias tokens (``#n``) that are
rewritten to actual field names before any document lookup. Substitution is
plain text replacement with no escaping.

Tokens are applied longest first, so ``#ab`` is replaced before ``#a`` and a
key like ``#ab`` never turns into ``<name of #a>b``.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from .exceptions import InvalidArgumentTypeError

logger = logging.getLogger(__name__)


def sort_alias_tokens(aliases: Optional[Mapping[str, str]]) -> List[str]:
    """
    Order alias tokens by descending length.

    Tokens of equal length keep their table order.
    """
    if not aliases:
        return []
    return sorted(aliases.keys(), key=len, reverse=True)


def resolve_aliases(
    field_key: str,
    aliases: Optional[Mapping[str, str]],
    sorted_tokens: Sequence[str]
) -> str:
    """
    Rewrite every alias token in a field key.

    Args:
        field_key: Field key as written in the expression
        aliases: Alias token to actual field name
        sorted_tokens: Tokens of ``aliases`` in descending length order

    Returns:
        Field key with all alias tokens replaced
    """
    if not aliases:
        return field_key

    resolved = field_key
    for token in sorted_tokens:
        if token in resolved:
            resolved = resolved.replace(token, aliases[token])
    return resolved


class AliasResolver:
    """
    Alias table bound to its precomputed token order.

    Example:
        >>> resolver = AliasResolver({"#a": "x", "#ab": "y"})
        >>> resolver.resolve("#ab")
        'y'
    """

    def __init__(self, aliases: Optional[Mapping[str, str]] = None):
        """
        Initialize resolver.

        Args:
            aliases: Alias token to actual field name

        Raises:
            InvalidArgumentTypeError: If a token or target is not a string
        """
        aliases = dict(aliases or {})
        for token, target in aliases.items():
            if not isinstance(token, str) or not isinstance(target, str):
                raise InvalidArgumentTypeError(
                    "alias",
                    f"alias {token!r} must map a string token to a string field name",
                    actual=type(target).__name__,
                )
        self.aliases = aliases
        self.sorted_tokens = sort_alias_tokens(aliases)
        if self.aliases:
            logger.debug(f"Alias resolver initialized with {len(self.aliases)} token(s)")

    def resolve(self, field_key: str) -> str:
        """Rewrite alias tokens in a field key."""
        return resolve_aliases(field_key, self.aliases, self.sorted_tokens)

    def __bool__(self) -> bool:
        return bool(self.aliases)
