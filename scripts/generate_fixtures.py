from __future__ import annotations

import logging
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Generate golden fixtures.

    Usage: ``generate_fixtures.py [DESCRIPTOR_DIR]``

    DESCRIPTOR_DIR (default: the current directory) holds any of
    ``density_function_tests.json``, ``config_function_tests.json`` and
    ``chunk_tests.json``. Output location, worker count, settings preset and
    an optional data directory come from the ``TERRAIN_FIXTURES_*``
    environment variables.
    """

    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))

    from worldgen.config import load_config_from_env
    from worldgen.errors import ConfigurationError
    from worldgen.fixtures import JsonDirectorySink, discover_descriptors, run_fixtures

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(message)s",
    )
    log = logging.getLogger("generate_fixtures")

    argv = sys.argv[1:] if argv is None else argv
    descriptor_dir = Path(argv[0]) if argv else Path.cwd()

    try:
        config = load_config_from_env()
        items = discover_descriptors(descriptor_dir)
    except ConfigurationError as exc:
        log.error("%s", exc)
        return 2

    if not items:
        log.warning("no descriptors found in %s", descriptor_dir)
        return 0

    summary = run_fixtures(
        items,
        JsonDirectorySink(config.output_dir),
        datapack_dir=config.datapack_dir,
        settings_key=config.settings_key,
        shape=config.shape,
        workers=config.workers,
    )
    for name in summary.skipped:
        log.warning("skipped: %s", name)
    for name in summary.fatal:
        log.error("fatal: %s", name)
    return 0 if not summary.fatal else 1


if __name__ == "__main__":
    sys.exit(main())
