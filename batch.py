from __future__ import annotations
import argparse
import csv
import logging
import os
import random
import tempfile
from dataclasses import dataclass
from multiprocessing import Pool
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from errors import BatchIOError, ConfigurationError
from model import INVALID, ORDERINGS, PARAM_FIELDS, SNAPSHOT, SimulationConfig, SimulationResult
from simulate import run_simulation

logger = logging.getLogger(__name__)

OUTPUT_FIELDS = (
    "n", "k", "voting_steps", "seed", "status",
    "num_iterations", "num_exchanges", "average_votes_held", "votes_learned", "error",
)

# row i of a batch runs with seed base_seed * DEFAULT_SEED_STRIDE + i
DEFAULT_SEED_STRIDE = 1000


@dataclass(frozen=True)
class BatchOptions:
    seed: Optional[int] = None
    max_rounds: Optional[int] = None
    ordering: str = SNAPSHOT
    workers: int = 1
    progress: bool = False


@dataclass
class BatchRow:
    index: int                   # 1-based position among input records
    fields: List[str]
    config: Optional[SimulationConfig] = None
    error: Optional[str] = None
    result: Optional[SimulationResult] = None

    def to_row(self) -> Dict[str, object]:
        if self.result is not None:
            return self.result.to_row()
        raw = list(self.fields) + [""] * (len(PARAM_FIELDS) - len(self.fields))
        row: Dict[str, object] = {name: raw[i].strip() for i, name in enumerate(PARAM_FIELDS)}
        row.update({f: "" for f in OUTPUT_FIELDS if f not in row})
        row["status"] = INVALID
        row["error"] = self.error or ""
        return row


def _is_header(fields: Sequence[str]) -> bool:
    return tuple(f.strip().lower() for f in fields) == PARAM_FIELDS


def read_params(path: str) -> List[List[str]]:
    """
    Raw records of the input table, header and blank lines dropped.
    Undecodable bytes become U+FFFD so only the affected row fails to parse.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
            records = [row for row in csv.reader(f) if row and any(x.strip() for x in row)]
    except OSError as e:
        raise BatchIOError(path, f"cannot read input: {e}") from e
    if records and _is_header(records[0]):
        records = records[1:]
    return records


def check_output_path(path: str) -> None:
    out_dir = os.path.dirname(os.path.abspath(path))
    if os.path.isdir(path):
        raise BatchIOError(path, "output path is a directory")
    if not os.path.isdir(out_dir):
        raise BatchIOError(path, f"output directory {out_dir} does not exist")
    if not os.access(out_dir, os.W_OK):
        raise BatchIOError(path, f"output directory {out_dir} is not writable")


def write_results(path: str, rows: Sequence[BatchRow]) -> None:
    """Writes all rows to a temp file beside path, then moves it into place."""
    out_dir = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", newline="", dir=out_dir, suffix=".tmp", delete=False
        ) as f:
            tmp_path = f.name
            writer = csv.DictWriter(f, fieldnames=OUTPUT_FIELDS)
            writer.writeheader()
            for row in rows:
                writer.writerow(row.to_row())
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise BatchIOError(path, f"cannot write output: {e}") from e


def prepare(records: Sequence[List[str]], options: BatchOptions) -> List[BatchRow]:
    """Parses and validates every record; invalid ones are kept with their error."""
    base_seed = options.seed
    if base_seed is None:
        base_seed = random.SystemRandom().randrange(2 ** 31)
    logger.info("base seed %d", base_seed)

    rows = []
    for i, fields in enumerate(records, start=1):
        row = BatchRow(index=i, fields=list(fields))
        try:
            row.config = SimulationConfig.from_row(
                fields,
                row=i,
                seed=base_seed * DEFAULT_SEED_STRIDE + i,
                max_rounds=options.max_rounds,
                ordering=options.ordering,
            ).validate(row=i)
        except ConfigurationError as e:
            logger.warning("skipping %s", e)
            row.error = e.reason
        rows.append(row)
    return rows


def run_batch(rows: Sequence[BatchRow], options: BatchOptions) -> List[BatchRow]:
    """Runs every valid row; results keep input order."""
    todo = [r for r in rows if r.config is not None]
    configs = [r.config for r in todo]
    bar = dict(total=len(configs), desc="simulations", unit="run", disable=not options.progress)

    if options.workers > 1 and len(configs) > 1:
        with Pool(options.workers) as pool:
            results = list(tqdm(pool.imap(run_simulation, configs), **bar))
    else:
        results = [run_simulation(c) for c in tqdm(configs, **bar)]

    for row, res in zip(todo, results):
        row.result = res
    return list(rows)


def _positive(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be positive, got {n}")
    return n


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="Simulate push-pull gossip of votes until every node holds a quorum."
    )
    ap.add_argument("input", help="CSV of n,k,voting_steps records")
    ap.add_argument("output", help="CSV to write one result row per input record to")
    ap.add_argument("--seed", type=int, default=None, help="base seed (default: random, logged)")
    ap.add_argument("--max-rounds", type=_positive, default=None,
                    help="round cap per run (default: voting_steps + 500)")
    ap.add_argument("--ordering", choices=ORDERINGS, default=SNAPSHOT,
                    help="in-round exchange ordering (default: snapshot)")
    ap.add_argument("--workers", type=_positive, default=1, help="worker processes (default: 1)")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--no-progress", action="store_true", help="hide the progress bar")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    options = BatchOptions(
        seed=args.seed,
        max_rounds=args.max_rounds,
        ordering=args.ordering,
        workers=args.workers,
        progress=not args.no_progress,
    )

    try:
        records = read_params(args.input)
        check_output_path(args.output)
        rows = run_batch(prepare(records, options), options)
        write_results(args.output, rows)
    except BatchIOError as e:
        logger.error("%s", e)
        return 1

    counts: Dict[str, int] = {}
    for row in rows:
        status = row.result.status if row.result is not None else INVALID
        counts[status] = counts.get(status, 0) + 1

    print("Done.")
    print(f"Rows: {len(rows)} " + " ".join(f"{k}={v}" for k, v in sorted(counts.items())))
    print(f"Results: {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
