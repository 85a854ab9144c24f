"""BST Lab launcher.

Provides a stable entry point that runs preflight checks before importing
GTK-related modules, which gives clearer error messages on new systems.
"""

from __future__ import annotations


def main() -> int:
    from bstlab.preflight import run_preflight_or_die

    run_preflight_or_die(require_display=True, check_deps=True)

    from bstlab.app import main as app_main

    return int(app_main())


if __name__ == "__main__":
    raise SystemExit(main())
