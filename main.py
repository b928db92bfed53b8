#main.py

"""
watchservice demo driver

Watches a scratch directory and walks through create, append, copy,
move and delete, waiting for the watcher to report each step.
"""
import sys
import shutil
import argparse
import logging
import tempfile
from pathlib import Path

from watchservice import DirectoryWatcher, RegistrationError
from watchservice.utils.config import load_config
from watchservice.utils.logger import setup_logging

logger = logging.getLogger(__name__)

EVENT_TIMEOUT = 10.0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Exercise the directory watcher")
    parser.add_argument("--directory", type=Path,
                        default=Path(tempfile.gettempdir()) / "WatchServiceTest",
                        help="directory to watch (created if missing)")
    parser.add_argument("--config", help="YAML or JSON configuration file")
    parser.add_argument("--log-level", help="override the configured log level")
    parser.add_argument("--polling", action="store_true",
                        help="force the polling observer")
    return parser.parse_args(argv)


def prepare_directory(path: Path):
    """Create the watched directory and remove leftovers from earlier runs"""
    path.mkdir(parents=True, exist_ok=True)
    for name in ("TestFile1.txt", "TestFile2.txt"):
        leftover = path / name
        if leftover.exists():
            leftover.unlink()


def wait(watcher: DirectoryWatcher):
    if not watcher.wait_for_event(timeout=EVENT_TIMEOUT):
        raise RuntimeError(f"No change reported within {EVENT_TIMEOUT}s")


def run(directory: Path, watcher: DirectoryWatcher):
    file1 = directory / "TestFile1.txt"
    file2 = directory / "TestFile2.txt"

    print(f"Creating new file [{file1}]")
    with open(file1, 'w', encoding='utf-8') as f:
        f.write("This is a test 1\n")
    wait(watcher)

    print(f"Updating file [{file1}]")
    with open(file1, 'a', encoding='utf-8') as f:
        f.write("This is another test\n")
    wait(watcher)

    print(f"Creating new file [{file2}]")
    with open(file2, 'w', encoding='utf-8') as f:
        f.write("This is a test 2\n")
    wait(watcher)

    print(f"Copying [{file1}] to [{file2}]")
    shutil.copyfile(file1, file2)
    wait(watcher)

    print(f"Moving [{file1}] to [{file2}]")
    file1.replace(file2)
    wait(watcher)

    print(f"Deleting file [{file2}]")
    file2.unlink()
    wait(watcher)


def main(argv=None) -> int:
    args = parse_args(argv)

    config = load_config(args.config)
    if args.log_level:
        config.logging.log_level = args.log_level
    if args.polling:
        config.watcher.use_polling = True

    setup_logging(
        log_level=config.logging.log_level,
        log_file=config.logging.log_file,
        log_format=config.logging.log_format,
    )

    prepare_directory(args.directory)

    watcher = DirectoryWatcher(args.directory, config.watcher)
    watcher.register_callback(
        lambda changes: logger.debug(f"Batch: {', '.join(str(c) for c in changes)}")
    )

    try:
        watcher.start()
    except RegistrationError as e:
        logger.error(f"Could not start watcher: {e}")
        return 1

    try:
        run(args.directory, watcher)
    except (OSError, RuntimeError) as e:
        logger.error(f"Error: {e}")
        return 1
    finally:
        watcher.stop()

    print("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
