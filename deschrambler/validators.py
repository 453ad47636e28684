"""Custom validators for argument parsing."""

import argparse
import math
from typing import Any, Optional, Sequence, Union


class NonNegativeFloatAction(argparse.Action):
    """Argparse action that validates a finite value >= 0."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Union[str, Sequence[Any], None],
        option_string: Optional[str] = None,
    ) -> None:
        """
        Validate and set the value.

        Raises:
            ArgumentError: If the value is negative or not finite.
        """
        name = option_string or self.dest
        # type=float has already converted the value
        if not isinstance(values, float):
            parser.error(f"{name} must be a number")
            return

        if not math.isfinite(values) or values < 0:
            parser.error(f"{name} must be a non-negative number, got {values}")
        setattr(namespace, self.dest, values)
