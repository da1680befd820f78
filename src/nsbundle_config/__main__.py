"""
`python -m nsbundle_config` entrypoint.

The installed console script `nsbundle-config` calls the same
`nsbundle_config.cli:main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
