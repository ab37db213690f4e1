"""CLI: Check .osu maps for abnormally huge spacing.

Usage:
    jump-detect path/to/map.osu
    jump-detect maps/*.osu --json report.json
    jump-detect map.osu --config configs/jump_check.yaml warning_delta=0.8
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from jump_detect.checks.jump import Finding, detect_jumps
from jump_detect.checks.report import finding_to_dict, render_finding
from jump_detect.config import JumpCheckConfig, load_config
from jump_detect.data.beatmap import parse_osu_file
from jump_detect.errors import JumpDetectError

logger = logging.getLogger(__name__)

CONFIG_KEYS = frozenset(f.name for f in dataclasses.fields(JumpCheckConfig))


def _is_override(arg: str) -> bool:
    key, sep, _ = arg.partition("=")
    return bool(sep) and key.split(".")[0] in CONFIG_KEYS


def check_maps(
    paths: list[Path],
    config: JumpCheckConfig,
) -> tuple[dict[str, list[Finding]], list[str]]:
    """Run the jump check on every map.

    Returns:
        Findings per map path, and the paths of maps that could not be checked.
    """
    results: dict[str, list[Finding]] = {}
    failed: list[str] = []
    for path in tqdm(paths, desc="Checking", unit="map", disable=len(paths) < 2):
        try:
            beatmap = parse_osu_file(path)
            results[str(path)] = detect_jumps(beatmap, config=config)
        except JumpDetectError as e:
            logger.error("%s: %s", path, e)
            failed.append(str(path))
        except (OSError, UnicodeDecodeError) as e:
            logger.error("%s: could not read map: %s", path, e)
            failed.append(str(path))
    return results, failed


def main(argv: list[str] | None = None) -> int:
    """Entry point for the jump-detect CLI command."""
    parser = argparse.ArgumentParser(description="Flag abnormally huge spacing in .osu maps")
    parser.add_argument("maps", type=Path, nargs="+", help=".osu files to check")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--json", type=Path, default=None, help="Write findings as JSON")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    argv = sys.argv[1:] if argv is None else list(argv)
    # key=value config overrides would otherwise be taken as map paths
    overrides = [arg for arg in argv if _is_override(arg)]
    args = parser.parse_args([arg for arg in argv if arg not in overrides])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = load_config(args.config, overrides)
    results, failed = check_maps(args.maps, config)

    for path, findings in results.items():
        print(f"\n{path}: {len(findings)} finding(s)")
        for finding in sorted(findings, key=lambda f: f.time):
            print(f"  [{finding.severity.value}] {render_finding(finding)}")

    if args.json is not None:
        report = {
            path: [finding_to_dict(f) for f in sorted(findings, key=lambda f: f.time)]
            for path, findings in results.items()
        }
        args.json.parent.mkdir(parents=True, exist_ok=True)
        with open(args.json, "w") as f:
            json.dump(report, f, indent=2)
        print(f"\nWrote findings for {len(report)} map(s) to {args.json}")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
