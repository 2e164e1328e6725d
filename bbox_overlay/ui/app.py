"""UI Entry point."""
import logging
import sys

from PySide6.QtWidgets import QApplication

from .views.main_window import MainWindow


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    app.setApplicationName("bbox-overlay")
    window = MainWindow()
    window.show()
    if len(sys.argv) > 1:
        window.open_pdf(sys.argv[1])
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
