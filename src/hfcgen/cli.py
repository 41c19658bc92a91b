"""
Command-line entry point: XLSForm → HFC do-file.

Example:
    hfcgen --instrument form.xlsx --output hfc.do \\
        --enumerator-id enum_id --unique-ids hhid --success-condition "consent == 1"

Values from --config (YAML) are overridden by flags given on the command line.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

import yaml

from hfcgen.analyzer import analyze_instrument
from hfcgen.backends import HFCParameters, save_do_file
from hfcgen.errors import HFCGenError
from hfcgen.serialization import catalog_to_yaml
from hfcgen.xlsform_parser import parse_xlsform_file


LOGGER = logging.getLogger(__name__)

_PARAMETER_FLAGS = [
    ("--instrument", "Path to the SurveyCTO XLSForm (.xlsx)"),
    ("--output", "Path of the do-file to write"),
    ("--working-dir", "Directory holding the exported datasets"),
    ("--enumerator-id", "Enumerator-id variable"),
    ("--success-condition", "Stata condition selecting completed interviews"),
    ("--respondent-name", "Respondent-name variable"),
    ("--corrections-file", "CSV of corrections (id, variable, value)"),
    ("--enumerator-comments", "Enumerator-comments variable"),
    ("--graphics-dir", "Directory for histograms (omit to disable graphics)"),
]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hfcgen",
        description="Generate a Stata high-frequency check do-file from a SurveyCTO XLSForm",
    )
    parser.add_argument("--config", help="YAML file with HFC parameters")
    for flag, help_text in _PARAMETER_FLAGS:
        parser.add_argument(flag, help=help_text)
    parser.add_argument("--unique-ids", nargs="+", help="Variables that jointly identify a submission")
    parser.add_argument("--catalog-yaml", help="Also write the variable catalog as YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def resolve_parameters(args: argparse.Namespace) -> HFCParameters:
    """Merge the YAML config (if any) with command-line flags."""
    values: Dict[str, object] = {}
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            values.update(yaml.safe_load(f) or {})
        values = {key.replace("-", "_"): value for key, value in values.items()}

    for flag, _ in _PARAMETER_FLAGS + [("--unique-ids", "")]:
        dest = flag.lstrip("-").replace("-", "_")
        value = getattr(args, dest)
        if value is not None:
            values[dest] = value

    return HFCParameters.from_dict(values)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        params = resolve_parameters(args)
    except (OSError, ValueError) as e:
        LOGGER.error("configuration: %s", e)
        return 1

    try:
        instrument = parse_xlsform_file(params.instrument)
    except (HFCGenError, FileNotFoundError) as e:
        LOGGER.error("parse %s: %s", params.instrument, e)
        return 1

    report = analyze_instrument(instrument)
    for warning in report.warnings:
        LOGGER.warning(warning)

    try:
        save_do_file(instrument, params)
    except OSError as e:
        LOGGER.error("write %s: %s", params.output, e)
        return 1
    LOGGER.info("Wrote %s (%d datasets)", params.output, len(instrument.datasets))

    if args.catalog_yaml:
        try:
            with open(args.catalog_yaml, "w", encoding="utf-8") as f:
                f.write(catalog_to_yaml(instrument.catalog))
        except OSError as e:
            LOGGER.error("write %s: %s", args.catalog_yaml, e)
            return 1
        LOGGER.info("Wrote %s", args.catalog_yaml)

    return 0


if __name__ == "__main__":
    sys.exit(main())
