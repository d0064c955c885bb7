"""
================================================================================
Application Entry Point
================================================================================

Usage:
    python -m polyfield.app [--stdout-log] [--log-level DEBUG]

Or:
    from polyfield.app import main
    main()
"""

import argparse
import sys

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication
from loguru import logger

from . import __version__
from .main_window import FieldEventWindow
from .session_config import get_default_config
from .styles.theme import FONT_FAMILY
from .utils.logging import start_log


def _parse_args(argv):
    parser = argparse.ArgumentParser(prog="polyfield", description="Field event measurement console")
    parser.add_argument("--stdout-log", action="store_true", help="echo log records to stderr")
    parser.add_argument("--log-level", default="INFO", help="minimum log level (default INFO)")
    parser.add_argument("--log-path", default=None, help="log file location")
    return parser.parse_known_args(argv)


def main(argv=None) -> int:
    """
    Launch the field event console.

    Returns:
        Exit code (0 for success)

    Example:
        >>> import sys
        >>> sys.exit(main())
    """
    argv = sys.argv if argv is None else argv
    args, qt_args = _parse_args(argv[1:])
    start_log(log_to_stdout=args.stdout_log, log_path=args.log_path, log_level=args.log_level.upper())
    logger.info("PolyField {} starting", __version__)

    app = QApplication([argv[0]] + qt_args)
    app.setStyle('Fusion')
    app.setFont(QFont(FONT_FAMILY.split(',')[0], 10))

    config = get_default_config()
    for issue in config.validate():
        logger.warning("Session config: {}", issue)

    window = FieldEventWindow(config)
    window.show()

    code = app.exec()
    logger.info("PolyField exited with code {}", code)
    return code


if __name__ == '__main__':
    sys.exit(main())
