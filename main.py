import logging
import sys

from PyQt5.QtWidgets import QApplication

from essaymark.config import AppPaths, load_config
from essaymark.ui import MainWindow
from essaymark.utils import configure_logging


def main():
    """
    Main function to run the grading application.
    An optional command-line argument names a saved session to resume.
    """
    configure_logging()
    logging.getLogger(__name__).info("Starting EssayMark")

    app = QApplication(sys.argv)

    session_id = None
    if len(sys.argv) > 1:
        session_id = sys.argv[1]

    window = MainWindow(load_config(), AppPaths.default(), session_id)
    window.showMaximized()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
