import asyncio
import getopt
import sys
from typing import List, Optional

from wsrelay.config import ServerConfig
from wsrelay.logs import Logger
from wsrelay.server import RelayServer


class Cmd:

    usage = '''
    Usages: ws-relay [OPTIONS] [OPTION_ARGS]

    Options:

        -H --host:       The address to listen on. Defaults to 127.0.0.1.
        -p --port:       The port to listen on. Defaults to 8080.
        -b --backlog:    The depth of the queue of pending connections. Defaults to 5.
        -t --timeout:    Seconds a client has to complete its handshake. Defaults to 10.
        -m --max-size:   The maximum size of an inbound frame in bytes. Defaults to 1048576.
        -l --log:        A file the logs are also written to.
        -v --verbose:    Log debug messages.
        -h --help:       The help message.
    '''

    def __init__(self, argv: Optional[List[str]] = None):
        self.argv = sys.argv[1:] if argv is None else argv
        self.logger = Logger.get_logger('wsrelay')

    def _fail(self, message: str):
        print(f"ws-relay: {message}", file=sys.stderr)
        print(self.usage, file=sys.stderr)
        sys.exit(2)

    def parse(self) -> ServerConfig:
        try:
            opts, args = getopt.getopt(self.argv,
                                       'H:p:b:t:m:l:vh',
                                       ['host=', 'port=', 'backlog=', 'timeout=', 'max-size=',
                                        'log=', 'verbose', 'help'])
        except getopt.GetoptError as exc:
            self._fail(str(exc))

        if any(opt in ['-h', '--help'] for opt, optarg in opts):
            print(self.usage)
            sys.exit()

        if args:
            self._fail(f"unexpected arguments {' '.join(args)}")

        kwargs = {}
        try:
            for opt, optarg in opts:
                if opt in ['-H', '--host']:
                    kwargs['host'] = optarg
                elif opt in ['-p', '--port']:
                    kwargs['port'] = int(optarg)
                elif opt in ['-b', '--backlog']:
                    kwargs['backlog'] = int(optarg)
                elif opt in ['-t', '--timeout']:
                    kwargs['handshake_timeout'] = float(optarg)
                elif opt in ['-m', '--max-size']:
                    kwargs['max_size'] = int(optarg)
                elif opt in ['-l', '--log']:
                    kwargs['log_file'] = optarg
                elif opt in ['-v', '--verbose']:
                    kwargs['verbose'] = True
            return ServerConfig(**kwargs)
        except ValueError as exc:
            self._fail(str(exc))

    def run(self) -> None:
        config = self.parse()

        Logger.configure(verbose=config.verbose)
        if config.log_file is not None:
            Logger.redirect_to_file(config.log_file)

        server = RelayServer(config)
        try:
            asyncio.run(server.run_forever())
        except OSError as exc:
            self.logger.critical(f"cannot serve on {config.host}:{config.port}: {exc}")
            sys.exit(1)
        except KeyboardInterrupt:
            self.logger.info("interrupted")


def main():
    Cmd().run()
