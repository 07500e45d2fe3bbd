"""Ordered argument token lists used to assemble ffmpeg command lines."""

from collections.abc import Iterable, Iterator

Token = str | int | float


def format_token(token: Token) -> str:
    """Render a token the way it should appear on the command line.

    Whole floats lose their trailing ``.0`` so ``2.0`` renders as ``2``.
    """
    if isinstance(token, float) and token.is_integer():
        return str(int(token))
    return str(token)


class ArgumentList:
    """An ordered, appendable sequence of command-line tokens.

    Tokens are kept as given (strings or numbers) and only stringified when the
    final argument vector is built.

    Example:
        args = ArgumentList()
        args.append("-acodec", "aac")
        args.find("-acodec", 1)  # ["aac"]
    """

    def __init__(self, tokens: Iterable[Token] | None = None):
        self._tokens: list[Token] = list(tokens) if tokens is not None else []

    def append(self, *tokens: Token | list[Token]) -> None:
        """Append tokens; a single list argument is flattened."""
        if len(tokens) == 1 and isinstance(tokens[0], list):
            self._tokens.extend(tokens[0])
        else:
            self._tokens.extend(tokens)  # type: ignore[arg-type]

    def clear(self) -> None:
        """Remove every token."""
        self._tokens = []

    def get(self) -> list[Token]:
        """Return a copy of the tokens."""
        return list(self._tokens)

    def clone(self) -> "ArgumentList":
        """Return an independent copy of this list."""
        return ArgumentList(self._tokens)

    def find(self, key: Token, count: int = 0) -> list[Token] | None:
        """Return the ``count`` tokens following the first ``key``.

        Args:
            key: Token to look for.
            count: Number of following tokens to return.

        Returns:
            The following tokens (possibly fewer at the end of the list), or
            None when ``key`` is absent.
        """
        try:
            index = self._tokens.index(key)
        except ValueError:
            return None
        return self._tokens[index + 1 : index + 1 + count]

    def remove(self, key: Token, count: int = 0) -> None:
        """Remove the first ``key`` and the ``count`` tokens following it."""
        try:
            index = self._tokens.index(key)
        except ValueError:
            return
        del self._tokens[index : index + 1 + count]

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __bool__(self) -> bool:
        return bool(self._tokens)

    def __repr__(self) -> str:
        return f"ArgumentList({self._tokens!r})"
