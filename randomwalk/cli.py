import argparse, json, sys
from randomwalk.config import Properties, load_properties
from randomwalk.exceptions import RandomWalkError
from randomwalk.logging_config import setup_logging, get_logger
from randomwalk.state import State

logger = get_logger("cli")


def _probe(args):
    props = load_properties(args.props) if args.props else Properties.from_env()

    with State(props, resource_timeout=args.timeout) as state:
        if args.max_visits is not None:
            state.set_max_visits(args.max_visits)
        instance = state.get_instance()
        credentials = state.get_credentials()
        connector = state.get_connector()
        summary = {
            "instance": instance.name,
            "instance_id": instance.instance_id,
            "driver": instance.driver,
            "principal": credentials.principal,
            "pid": state.get_pid(),
            "max_visits": state.max_visits,
        }
        if args.with_writer:
            writer = state.get_multi_table_batch_writer()
            summary["writer"] = {
                "max_memory": writer.config.max_memory,
                "max_latency_ms": writer.config.max_latency_ms,
                "max_write_threads": writer.config.max_write_threads,
            }
        summary["connected"] = not connector.is_closed()

    print(json.dumps(summary, indent=2))


def main(argv=None):
    p = argparse.ArgumentParser(prog="randomwalk-state", description="Random-walk execution context tools")
    p.add_argument("--log-level", type=str, default=None, help="Log level (or set RW_LOG_LEVEL)")
    subs = p.add_subparsers(dest="cmd", required=True)

    p1 = subs.add_parser("probe", help="Build every shared handle once and report on it")
    p1.add_argument("--props", type=str, help="Properties file (or set RW_INSTANCE, RW_ZOOKEEPERS, ...)")
    p1.add_argument("--max-visits", type=int, default=None)
    p1.add_argument("--timeout", type=float, default=None, help="Seconds to wait on a shared handle")
    p1.add_argument("--with-writer", action="store_true", help="Also build the multi-table batch writer")
    p1.set_defaults(func=_probe)

    args = p.parse_args(argv)
    setup_logging(level=args.log_level, enable_file=False)
    try:
        args.func(args)
    except RandomWalkError as e:
        logger.error(f"{args.cmd} failed: {e}")
        raise SystemExit(f"error: {e}")

if __name__ == "__main__":
    main(sys.argv[1:])
