import datetime
import io
import logging
import sys
from os import PathLike
from typing import ClassVar, Dict, Optional

__all__ = ['Logger']


class Logger(logging.Logger):
    """
    The logger implementation for the whole project.

    The :class:`Logger` is a subclass of :class:`logging.Logger`. It rewrites
    the logging methods so that every record is prefixed with a timestamp and
    coloured by severity, and it provides :meth:`configure` and
    :meth:`redirect_to_file` to set up the output in one call.

    The current :class:`Logger` is actually a dummy Logger and only provides
    the logging interface for users. The real logger is the wrapped
    :obj:`_logger`, which is part of the logging chain so that handlers,
    levels and propagation behave as usual.

    Attributes:
        _logger: The real :class:`logging.Logger`. See the
            `logging document`_ and `HOW-TO`_ for more details.

            .. _`logging document`: https://docs.python.org/3/library/logging.html
            .. _`HOW-TO`: https://docs.python.org/3/howto/logging.html

    """

    colors: ClassVar[Dict[int, int]] = {
        logging.DEBUG: 38,
        logging.INFO: 38,
        logging.WARNING: 33,
        logging.ERROR: 31,
        logging.CRITICAL: 31,
    }

    def __init__(self, logger: logging.Logger):
        super().__init__(logger.name)
        self._logger = logger

    @staticmethod
    def configure(verbose: bool = False, stream=None) -> None:
        """
        Send the records of every :class:`Logger` to ``stream``, which
        defaults to :data:`sys.stderr`.

        Args:
            verbose(bool): Log at DEBUG instead of INFO.
            stream: The diagnostic stream.

        """
        h = logging.StreamHandler(stream if stream is not None else sys.stderr)
        h.setFormatter(logging.Formatter(logging.BASIC_FORMAT, None, '%'))
        root = logging.getLogger()
        root.addHandler(h)
        root.setLevel(logging.DEBUG if verbose else logging.INFO)

    @staticmethod
    def redirect_to_file(filename: PathLike,
                         mode: str = 'a',
                         logger: Optional['Logger'] = None) -> None:
        """
        Redirect the output stream of :class:`Logger` to a file.

        The method :meth:`redirect_to_file` behaves like the function
        :func:`logging.basicConfig` in :mod:`logging`::

            Logger.redirect_to_file('relay.log')

        Args:
            filename(PathLike): The path of the redirected file.
            mode(str): The mode for opening the file.
            logger(Optional[Logger]): The :class:`Logger` to redirect. If not
                provided, all :class:`Logger` will be redirected.

        """
        encoding = None
        errors = 'backslashreplace'
        if 'b' in mode:
            errors = None
        else:
            encoding = io.text_encoding(encoding)
        h = logging.FileHandler(filename, mode, encoding=encoding, errors=errors)
        h.setFormatter(logging.Formatter(logging.BASIC_FORMAT, None, '%'))
        if not logger:
            logging.root.addHandler(h)
        else:
            logger._logger.addHandler(h)

    @classmethod
    def get_logger(cls, name=None) -> 'Logger':
        """
        Get the :class:`Logger` object with given name. If not provided, it
        will return the root :class:`Logger`.

        It behaves like the function :func:`logging.getLogger`.

        Returns:
            Logger: The :class:`Logger` object.
        """
        return cls(logging.getLogger(name))

    def _colored(self, level: int, msg) -> str:
        now = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return f'\033[{self.colors.get(level, 38)}m[{now}]{msg}\033[0m'

    def isEnabledFor(self, level):
        return self._logger.isEnabledFor(level)

    def log(self, level, msg, *args, **kwargs):
        """
        Log 'msg % args' with the integer severity 'level'.

        To pass exception information, use the keyword argument exc_info with
        a true value, e.g.

        logger.log(level, "We have a %s", "mysterious problem", exc_info=1)
        """
        if not isinstance(level, int):
            raise TypeError("level must be an integer")
        if self._logger.isEnabledFor(level):
            kwargs.setdefault('stacklevel', 3)
            self._logger._log(level, self._colored(level, msg), args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs):
        """
        Convenience method for logging an ERROR with exception information.
        """
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def fatal(self, msg, *args, **kwargs):
        """
        Don't use this method, use critical() instead.
        """
        self.critical(msg, *args, **kwargs)
