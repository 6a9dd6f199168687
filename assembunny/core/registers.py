"""Register storage for the interpreter: named 32-bit signed values."""

from typing import Dict, Iterator, List, Tuple

from ..errors import AsmbError, ErrorKind
from .instruction import INT32_MAX, INT32_MIN, Literal, Operand, RegisterRef


class RegisterEnvironment:
    """
    Dynamic mapping from register name to 32-bit signed value.

    Registers come into existence through ``define`` and are never removed.
    Names are kept in first-definition order for listings.
    """

    def __init__(self, allow_redefinition: bool = True):
        self.allow_redefinition = allow_redefinition
        self._values: Dict[str, int] = {}
        self._order: List[str] = []

    def define(self, name: str, value: int) -> None:
        if name in self._values:
            if not self.allow_redefinition:
                raise AsmbError(ErrorKind.INVALID_DEFINITION,
                                f"register '{name}' already exists")
        else:
            self._order.append(name)
        self._values[name] = value

    def get(self, name: str) -> int:
        try:
            return self._values[name]
        except KeyError:
            raise AsmbError(ErrorKind.UNDECLARED_REGISTER,
                            f"register '{name}' does not exist") from None

    def set(self, name: str, value: int) -> None:
        if name not in self._values:
            raise AsmbError(ErrorKind.UNDECLARED_REGISTER,
                            f"register '{name}' does not exist")
        if not INT32_MIN <= value <= INT32_MAX:
            raise ValueError(f"value {value} does not fit a 32-bit register")
        self._values[name] = value

    def resolve(self, operand: Operand) -> int:
        """Value of a literal, or the current value of a declared register."""
        if isinstance(operand, Literal):
            return operand.value
        if isinstance(operand, RegisterRef):
            return self.get(operand.name)
        raise AsmbError(ErrorKind.MALFORMED_OPERAND, f"cannot resolve operand {operand!r}")

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._order)

    def items(self) -> Iterator[Tuple[str, int]]:
        for name in self._order:
            yield name, self._values[name]

    def snapshot(self) -> Dict[str, int]:
        return dict(self.items())
