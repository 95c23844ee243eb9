"""
An interactive client for the relay.

Every line typed is sent as a text message and every message relayed by the
server is printed::

    ws-relay-client ws://127.0.0.1:8080
"""
import asyncio
import sys

from websockets import connect
from websockets.exceptions import ConnectionClosed

from wsrelay.logs import Logger


logger = Logger.get_logger('wsrelay.client')


async def print_messages(websocket, out=None):
    async for message in websocket:
        print(str(message), file=out or sys.stdout, flush=True)


async def send_lines(websocket, stream=None):
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, (stream or sys.stdin).readline)
        if not line:
            return
        await websocket.send(line.rstrip('\r\n'))


async def make_conn(uri):
    async with connect(uri) as websocket:
        logger.info(f"connected to {uri}")
        receiver = asyncio.create_task(print_messages(websocket))
        try:
            await send_lines(websocket)
        except ConnectionClosed:
            logger.warning("connection closed by the server")
        finally:
            receiver.cancel()


def main():
    uri = sys.argv[1] if len(sys.argv) > 1 else "ws://127.0.0.1:8080"
    Logger.configure()
    try:
        asyncio.run(make_conn(uri))
    except OSError as exc:
        logger.critical(f"cannot connect to {uri}: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == '__main__':
    main()
