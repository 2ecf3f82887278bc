import argparse
import logging
from pprint import pprint
from typing import Optional

from pixstack.api.pipeline import InstantFilter
from pixstack.api.project import StorageProject
from pixstack.api.session import EditSession
from pixstack.exceptions import PixstackError
from pixstack.filters import FILTERS, get_filter
from pixstack.version import __version__

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="pixstack command line utility.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Be more verbose.")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser(
        "export", help="Export a project or one of its layers as PNG"
    )
    export_parser.add_argument(
        "input_file",
        help="Input project JSON (optionally with layer index, e.g. file.json[0])",
    )
    export_parser.add_argument("output_file", help="Output image file")

    filter_parser = subparsers.add_parser(
        "filter", help="Apply an instant filter to the focused (top) layer"
    )
    filter_parser.add_argument("input_file", help="Input project JSON")
    filter_parser.add_argument("name", choices=sorted(FILTERS), help="Filter name")
    filter_parser.add_argument("output_file", help="Output project JSON")

    show_parser = subparsers.add_parser("show", help="Show the project content")
    show_parser.add_argument("input_file", help="Input project JSON")

    return parser.parse_args(argv)


def _load(path: str) -> StorageProject:
    with open(path, "r") as f:
        return StorageProject.from_json(f.read())


def main(argv: Optional[list[str]] = None) -> Optional[int]:
    args = parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    package_logger = logging.getLogger("pixstack")
    if args.verbose:
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(logging.INFO)

    if args.command == "export":
        input_parts = args.input_file.split("[")
        input_file = input_parts[0]
        session = EditSession.from_storage(_load(input_file))
        if len(input_parts) > 1:
            index = int(input_parts[1].rstrip("]"))
            image = session.stack[index].topil()
        else:
            image = session.render().topil()
        image.save(args.output_file)

    elif args.command == "filter":
        record = _load(args.input_file)
        session = EditSession.from_storage(record)
        filter = get_filter(args.name)
        if not isinstance(filter, InstantFilter):
            logger.error("Filter %r needs parameters" % args.name)
            return 1
        try:
            result = session.apply_filter(filter)
        except PixstackError as e:
            logger.error(str(e))
            return 1
        if not result:
            logger.error("Filter %r failed: %s" % (args.name, result.message))
            return 1
        output = StorageProject.from_stack(session.stack, id=record.id)
        with open(args.output_file, "w") as f:
            f.write(output.to_json())

    elif args.command == "show":
        record = _load(args.input_file)
        pprint(record)
        for index, layer in enumerate(record.layers):
            print(
                "%d: %r opacity=%g mode=%s"
                % (index, layer.name, layer.opacity, layer.blend_mode.value)
            )

    return None


if __name__ == "__main__":
    main()
