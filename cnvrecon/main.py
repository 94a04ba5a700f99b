# cnvrecon/main.py
import argparse
import sys
import time
import traceback
from typing import Callable, Tuple

from .config import load_config
from .errors import CnvReconError

# -----------------------------
# CLI
# -----------------------------
def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CNV status reconciliation pipeline")
    p.add_argument("--config", help="Path to pipeline_config.yaml (else $CONFIG_PATH, else config/pipeline_config.yaml)")
    p.add_argument("--debug", action="store_true", help="Show full Python tracebacks on errors")
    return p.parse_args(argv)

# -----------------------------
# Step runner (with optional tracebacks)
# -----------------------------
def _run_step(name: str, fn: Callable[[], None], *, debug: bool) -> Tuple[bool, str]:
    print(f"\n===== RUN {name} =====")
    t0 = time.time()
    status = "OK"
    try:
        fn()
    except SystemExit as se:
        status = f"FAIL (SystemExit {se.code})"
        if debug:
            print(traceback.format_exc(), file=sys.stderr)
        else:
            print(f"[ERROR] {name} raised SystemExit({se.code})", file=sys.stderr)
    except Exception as e:
        status = f"FAIL ({type(e).__name__}: {e})"
        if debug:
            print(traceback.format_exc(), file=sys.stderr)
        else:
            print(f"[ERROR] {type(e).__name__}: {e}", file=sys.stderr)
            print("  (run with --debug to see full traceback)", file=sys.stderr)
    dt = time.time() - t0
    print(f"===== DONE {name} [{status}] in {dt:.1f}s =====")
    return (status == "OK"), status

# -----------------------------
# Entry point
# -----------------------------
def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        cfg_path, cfg = load_config(args.config)
    except CnvReconError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    from .pipeline import run_pipeline

    print(f"[INFO] Using config: {cfg_path}")
    print(f"[INFO] Policy: {cfg.fill_policy}  genes: {', '.join(cfg.tracked_genes)}")

    start_all = time.time()
    ok, _ = _run_step("reconcile", lambda: run_pipeline(cfg), debug=args.debug)
    print(f"\nTotal: {time.time()-start_all:.1f}s")
    return 0 if ok else 1

if __name__ == "__main__":
    sys.exit(main())
