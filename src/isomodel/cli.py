"""
Command line interface.

    isomodel [-v] compile INPUT OUTPUT [--target csharp --target typescript ...]
    isomodel [-v] render --layout page.json --state state.json --templates modules/
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .backends import TargetLanguage
from .compiler import compile_directory, summarize
from .config import CompilerConfig
from .errors import ManifestError, RenderError
from .layout import load_layout
from .renderer import Engine, TemplateRegistry, render_page
from .snapshot import StateSnapshot

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="isomodel", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v for progress, -vv for debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    compile_cmd = sub.add_parser("compile", help="generate target classes from view-model sources")
    compile_cmd.add_argument("input_dir", nargs="?", help="directory of view-model .py files")
    compile_cmd.add_argument("output_dir", nargs="?", help="directory for generated files")
    compile_cmd.add_argument("--target", dest="targets", action="append",
                             choices=[t.value for t in TargetLanguage],
                             help="output language (repeatable)")
    compile_cmd.add_argument("--namespace", help="C# namespace")
    compile_cmd.add_argument("--manifest", dest="manifest_file",
                             help="also write the manifest (.json, .yaml or .yml)")
    compile_cmd.add_argument("--pattern", help="source file glob (default *.py)")
    compile_cmd.add_argument("--workers", type=int, help="parser threads")
    compile_cmd.add_argument("--config", help="YAML configuration file")

    render_cmd = sub.add_parser("render", help="render a page from a layout and a state snapshot")
    render_cmd.add_argument("--layout", required=True, help="layout JSON file")
    render_cmd.add_argument("--state", required=True, help="state snapshot JSON file")
    render_cmd.add_argument("--templates", required=True, help="directory of module templates")
    render_cmd.add_argument("--suffix", default=".hbs", help="template file suffix")
    render_cmd.add_argument("--engine", default=Engine.INTERPRETED.value,
                            choices=[e.value for e in Engine])
    render_cmd.add_argument("-o", "--output", help="write markup here instead of stdout")

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def run_compile(args: argparse.Namespace) -> int:
    config = CompilerConfig.from_yaml(args.config) if args.config else CompilerConfig()
    config.override(
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        targets=args.targets,
        namespace=args.namespace,
        manifest_file=args.manifest_file,
        pattern=args.pattern,
        workers=args.workers,
    )
    result = compile_directory(config)
    stats = summarize(result.manifests)
    print(f"Compiled {stats['classes']} classes ({stats['fields']} fields, "
          f"{stats['computed']} computed) into {len(result.written)} files")
    return 0


def run_render(args: argparse.Namespace) -> int:
    layout = load_layout(args.layout)
    with open(args.state, "r", encoding="utf-8") as f:
        snapshot = StateSnapshot.from_json(f.read())
    registry = TemplateRegistry.from_directory(args.templates, suffix=args.suffix,
                                               engine=Engine(args.engine))
    markup = render_page(layout, snapshot, registry)
    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            f.write(markup)
    else:
        sys.stdout.write(markup)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.command == "compile":
            return run_compile(args)
        return run_render(args)
    except (ManifestError, RenderError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
