'''
Console and file logging for the eigenvalue-system components.

A thin layer over the standard `logging` module adding indentation levels,
optional ANSI colours and one shared instance per process.

@note File logging is enabled by setting EIGSYS_LOGFILE to the path of the log file.
@note Coloured console output is disabled by setting EIGSYS_LOGCOLORS to '0'.

-------------------------------------------------------
file        :   eigsystems/common/flog.py
description :   Logger used by the solvers, the system controller and the readers.
-------------------------------------------------------
'''

__all__         = [
    "Logger",
    "Colors",
    "get_global_logger"
]

import os
import re
import sys
import logging
import threading
from typing import Optional, Union

######################################################
#! COLOURS
######################################################

class Colors:
    """
    ANSI escape codes by colour name.
    """
    CODES = {
        "black"     : "\033[30m",
        "red"       : "\033[31m",
        "green"     : "\033[32m",
        "yellow"    : "\033[33m",
        "blue"      : "\033[34m",
        "white"     : "\033[0m",
    }
    RESET = "\033[0m"

    @classmethod
    def code(cls, color: str) -> str:
        return cls.CODES.get(color.lower(), cls.RESET)

_ANSI = re.compile(r'\x1b\[[0-9;]*m')

class _PlainFormatter(logging.Formatter):
    '''Drops colour codes from records written to files.'''

    def format(self, record):
        return _ANSI.sub('', super().format(record))

######################################################
#! LOGGER
######################################################

ENV_LOGGER_FILE     = 'EIGSYS_LOGFILE'
ENV_LOGGER_COLORS   = 'EIGSYS_LOGCOLORS'

class Logger:
    """
    Wrapper of a named `logging.Logger` writing to stdout (and a file when
    configured). Messages at indentation level `lvl` > 0 are prefixed with
    tabs and an arrow, which is how nested solver steps are shown.
    """

    LEVELS = {
        logging.DEBUG   : 'debug',
        logging.INFO    : 'info',
        logging.WARNING : 'warning',
        logging.ERROR   : 'error'
    }

    LEVELS_R = {v: k for k, v in LEVELS.items()}

    def __init__(self,
                name            : str                   = "eigsystems",
                logfile         : Optional[str]         = None,
                lvl             : Union[int, str]       = logging.INFO,
                use_ts_in_cmd   : bool                  = False):
        """
        Args:
            name (str):
                Name of the underlying `logging` logger.
            logfile (str):
                Path of a log file, also added as a handler. Defaults to the
                EIGSYS_LOGFILE environment variable.
            lvl (int | str):
                Threshold level, a `logging` constant or its name.
            use_ts_in_cmd (bool):
                Prefix console lines with a timestamp.
        """
        self.lvl                = Logger.LEVELS_R.get(lvl.lower(), logging.INFO) if isinstance(lvl, str) else lvl
        self.has_colors         = sys.stdout.isatty() and os.environ.get(ENV_LOGGER_COLORS, '1') != '0'
        self.logfile            = logfile if logfile is not None else os.environ.get(ENV_LOGGER_FILE) or None

        self.logger             = logging.getLogger(name)
        self.logger.setLevel(self.lvl)
        self.logger.propagate   = False
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        fmt     = '%(asctime)s [%(levelname)s] %(message)s' if use_ts_in_cmd else '[%(levelname)s] %(message)s'
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(fmt, datefmt="%d_%m_%Y_%H-%M_%S"))
        self.logger.addHandler(console)

        if self.logfile:
            self._add_file_handler(self.logfile)

    def _add_file_handler(self, path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(path, encoding='utf-8')
        handler.setFormatter(_PlainFormatter('%(asctime)s [%(levelname)s] %(message)s', datefmt="%d_%m_%Y_%H-%M-%S"))
        self.logger.addHandler(handler)

    # --------------------------------------------------------------

    @staticmethod
    def colorize(txt: str, color: Optional[str]) -> str:
        if not color or color.lower() == 'white':
            return str(txt)
        return f"{Colors.code(color)}{txt}{Colors.RESET}"

    @staticmethod
    def indent(msg: str, lvl: int = 0) -> str:
        return "\t" * lvl + "->" + str(msg) if lvl > 0 else str(msg)

    def set_level(self, lvl: Union[int, str]):
        self.lvl = Logger.LEVELS_R.get(lvl.lower(), logging.INFO) if isinstance(lvl, str) else lvl
        self.logger.setLevel(self.lvl)

    # --------------------------------------------------------------

    def say(self, *args, log: Union[int, str] = logging.INFO, lvl: int = 0, verbose: bool = True, color: Optional[str] = None):
        """
        Log the given messages, one per line.

        Args:
            *args           : Messages.
            log (int | str) : Level, a `logging` constant or 'debug', 'info', 'warning', 'error'.
            lvl (int)       : Indentation level.
            verbose (bool)  : Nothing is logged when False.
            color (str)     : Colour name, used when the console supports it.
        """
        if isinstance(log, str):
            log = Logger.LEVELS_R.get(log.lower(), logging.DEBUG)
        if not verbose or log < self.lvl:
            return
        msg = '\n'.join(str(arg) for arg in args)
        if color is not None and self.has_colors:
            msg = self.colorize(msg, color)
        self.logger.log(log, self.indent(msg, lvl))

    def info(self, msg: str, lvl: int = 0, color: Optional[str] = None):
        self.say(msg, log=logging.INFO, lvl=lvl, color=color)

    def debug(self, msg: str, lvl: int = 0, color: Optional[str] = None):
        self.say(msg, log=logging.DEBUG, lvl=lvl, color=color)

    def warning(self, msg: str, lvl: int = 0, color: Optional[str] = 'yellow'):
        self.say(msg, log=logging.WARNING, lvl=lvl, color=color)

    def error(self, msg: str, lvl: int = 0, color: Optional[str] = 'red'):
        self.say(msg, log=logging.ERROR, lvl=lvl, color=color)

######################################################

_G_LOGGER     = None
_G_LOGGER_PID = None
_G_LOCK       = threading.Lock()

def get_global_logger(**kwargs) -> Logger:
    """
    The process-wide Logger, created on first use. A forked child gets its own.

    Args:
        **kwargs: passed to `Logger` on creation (name, logfile, lvl, use_ts_in_cmd).

    Example
    -------
        >>> logger = get_global_logger()
        >>> logger.info("Solving eigenproblem.")
        >>> logger.debug("Allocated operator A.", lvl=1)
    """
    global  _G_LOGGER, _G_LOGGER_PID
    pid     = os.getpid()
    with _G_LOCK:
        if _G_LOGGER is None or _G_LOGGER_PID != pid:
            _G_LOGGER       = Logger(**kwargs)
            _G_LOGGER_PID   = pid
        return _G_LOGGER

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
