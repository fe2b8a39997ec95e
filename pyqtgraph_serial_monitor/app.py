import argparse
import sys
from typing import List, Optional

from PySide6 import QtWidgets

from .logging_cfg import configure_logging
from .main_window import MonitorWindow


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Live plot of comma-separated numbers from a serial port")
    p.add_argument("--config", default="", help="JSON config to load at start")
    p.add_argument("--log-level", default="INFO", help="console log level (DEBUG, INFO, WARNING, ...)")
    p.add_argument("--log-file", default="", help="optional rotating log file")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file or None)

    app = QtWidgets.QApplication(sys.argv[:1])
    win = MonitorWindow()
    if args.config:
        win.load_config(args.config)
    win.resize(1280, 720)
    win.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
