"""
Logging and config helpers shared by tabwright commands.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from tabwright.config import BrowserConfig


def get_log_dir():
    """
    Determines a suitable path for the log file.
    Logs are stored in the user's home directory under '.tabwright/logs/'.
    """
    home_dir = Path.home()
    log_dir = home_dir / '.tabwright' / 'logs'  # Log saved to `~/.tabwright/logs/`
    log_dir.mkdir(parents=True, exist_ok=True)  # Ensure the log directory exists
    return log_dir


def setup_command_logger(log_filename, verbose=False, log_dir: Optional[Path] = None):
    """
    Sends records to a file under the log dir and to the console.
    With verbose, the root logger runs at DEBUG instead of INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    log_path = Path(log_dir or get_log_dir()) / log_filename
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(log_path, mode='a')
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    logger = logging.getLogger("tabwright.command")
    logger.debug(f"Logging to {log_path}")
    return logger


def load_browser_config(config_path=None, port=None):
    """
    Resolves the browser config from an optional YAML/JSON file, the
    environment, and a command-line port override, in that order.
    """
    if config_path is None:
        config = BrowserConfig.from_env()
    else:
        config = BrowserConfig.from_file(config_path)
    if port is not None:
        config = replace(config, control_port=port, control_url=f"http://127.0.0.1:{port}")
    return config
