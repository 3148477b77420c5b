# Query game servers over A2S from the command line

import argparse
import asyncio
from datetime import datetime
import logging
import sys

from a2s import A2SClient, A2SError
from a2s.monitor import ServerMonitor
from a2s.utils import Config, format_info, format_players, format_rules, parse_encoding


QUERIES = {
    "info": (A2SClient.info, format_info),
    "players": (A2SClient.players, format_players),
    "rules": (A2SClient.rules, format_rules)
}


def build_parser():
    parser = argparse.ArgumentParser(prog="a2s-query", description="Query a game server over the A2S protocol")
    parser.add_argument("host", help="server hostname or IP address")
    parser.add_argument("port", type=int, help="server query port")
    parser.add_argument("query", nargs="?", default="info", choices=list(QUERIES) + ["monitor"])
    parser.add_argument("--timeout", type=float, help="seconds to wait for a response")
    parser.add_argument("--encoding", help="text encoding, or 'raw' for bytes")
    parser.add_argument("--retries", type=int, help="maximum challenge retries")
    parser.add_argument("--config", default="config.txt", help="key=value config file")
    parser.add_argument("--interval", type=float, help="seconds between monitor updates")
    parser.add_argument("--log-file", help="write logs to this file instead of stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser


def setup_logging(log_file=None, verbose=False):
    level = logging.DEBUG if verbose else logging.INFO
    if log_file:
        logname = datetime.utcnow().strftime(log_file)
        logging.basicConfig(format='[%(asctime)s][%(levelname)s] %(message)s', datefmt='%m/%d %H:%M:%S', filename=logname, filemode='w+', level=level)
    else:
        logging.basicConfig(format='[%(asctime)s][%(levelname)s] %(message)s', datefmt='%m/%d %H:%M:%S', level=level if verbose else logging.WARNING)


async def run_query(args, config):
    timeout = args.timeout if args.timeout is not None else config.timeout()
    encoding = parse_encoding(args.encoding) if args.encoding is not None else config.get_encoding()
    retries = args.retries if args.retries is not None else config.retries()

    if args.query == "monitor":
        interval = args.interval if args.interval is not None else config.get_float("interval", 30.0)
        monitor = ServerMonitor(args.host, args.port, timeout, encoding, config.get("timezone", "UTC"), retries)
        await monitor.run(interval)
        return None

    method, formatter = QUERIES[args.query]
    client = A2SClient(args.host, args.port, timeout, encoding, retries)
    return formatter(await method(client))


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = Config(args.config)
    setup_logging(args.log_file, args.verbose)
    logging.info('Querying %s:%s for %s', args.host, args.port, args.query)

    try:
        output = asyncio.run(run_query(args, config))
    except asyncio.TimeoutError:
        print(f"Timed out waiting for {args.host}:{args.port}", file=sys.stderr)
        return 1
    except A2SError as e:
        print(f"{e.__class__.__name__}: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0

    if output is not None:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
