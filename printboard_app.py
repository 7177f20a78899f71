#!/usr/bin/env python3
"""Print Board - Arrange photos on a canvas at their real print size."""

import argparse
import logging
import sys

from controller import MainWindow, PrintBoardApp
from models import UploadSettings


def main():
    parser = argparse.ArgumentParser(description="Print Board")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--max-concurrent", type=int, default=UploadSettings.max_concurrent,
                        help="Number of photos decoded at once")
    parser.add_argument("files", nargs="*", help="Photos to add at startup")
    args = parser.parse_args()

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)

    app = PrintBoardApp(sys.argv)
    app.setApplicationName("Print Board")
    window = MainWindow(UploadSettings(max_concurrent=args.max_concurrent))
    window.show()

    # Connect macOS file-open events (photos dropped on the Dock icon)
    app.file_open_requested.connect(lambda path: window.add_photos([path]))

    if args.files:
        window.add_photos(args.files)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
