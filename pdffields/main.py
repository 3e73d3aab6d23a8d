"""Desktop entry point."""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from pdffields.config import configure_logging
from pdffields.ui.main_window import MainWindow


def main() -> int:
    configure_logging()
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
