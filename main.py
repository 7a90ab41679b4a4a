# main.py
import sys
from pathlib import Path

from logging_config import setup_logging

setup_logging()

from PyQt6.QtWidgets import QApplication

from View.gui import MeasureEditorGUI


def main():
    app = QApplication(sys.argv)

    win = MeasureEditorGUI()
    win.showMaximized()

    # Optional: open an image given on the command line
    args = app.arguments()[1:]
    if args and Path(args[0]).is_file():
        win.open_path(args[0])

    sys.exit(app.exec())

if __name__ == "__main__":
    main()
