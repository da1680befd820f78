#!/usr/bin/env python3
"""
Source-checkout entrypoint.

Allows running the tool without installing it:
  python3 nsbundle_config.py -c context.json
"""

import os
import sys

# Support running from a source checkout without installation by adding `src/`
# to sys.path.
_HERE = os.path.dirname(os.path.abspath(__file__))
_SRC = os.path.join(_HERE, "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

# Behave like a package shim when imported as `nsbundle_config` so that
# `src/nsbundle_config/` submodules still resolve.
__path__ = [os.path.join(_SRC, "nsbundle_config")]


def main(argv: list[str] | None = None) -> int:
    from nsbundle_config.cli import main as _main

    return _main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
