from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

from .logger import log_event
from .models import ProbeResult, ScanConfig
from .ports import iter_batches
from .prober import ProbeError, probe_port

log = logging.getLogger(__name__)

ProbeFn = Callable[..., ProbeResult]


class ScanAborted(Exception):
    """A probe hit a local failure and the scan was configured to stop."""

    def __init__(self, error: ProbeError, results: List[ProbeResult]):
        super().__init__(str(error))
        self.error = error
        self.results = results


def _failed(error: ProbeError, elapsed_s: float) -> ProbeResult:
    return ProbeResult(
        port=error.port,
        # open/write only happen after the port answered
        live=error.stage in ("open", "write"),
        elapsed_s=round(elapsed_s, 4),
        # a failed write leaves a partial capture on disk
        capture_path=error.path if error.stage == "write" else None,
        error=str(error),
    )


def scan(config: ScanConfig, progress=None, probe: ProbeFn = probe_port) -> List[ProbeResult]:
    """
    Lockstep batch scanner.

    Ports are split into batches of config.threads; every port in a batch
    gets its own worker and the next batch only starts once the whole
    batch is done. `progress` is anything with update(n), e.g. a tqdm bar.
    """
    ports = config.ports()
    results: List[ProbeResult] = []
    stop = threading.Event()
    abort: Optional[ProbeError] = None
    start_all = time.perf_counter()

    log_event(
        log,
        "scan_start",
        f"[*] Scanning {len(ports)} ports on {config.host} ({config.threads} at a time)",
        logging.DEBUG,
        host=config.host,
        start_port=config.start_port,
        end_port=config.end_port,
        threads=config.threads,
    )

    with ThreadPoolExecutor(max_workers=config.threads) as pool:
        try:
            for batch in iter_batches(ports, config.threads):
                batch_start = time.perf_counter()
                futures = [pool.submit(probe, config, port, stop=stop) for port in batch]

                # as_completed drains every future: that is the batch barrier
                for fut in as_completed(futures):
                    try:
                        results.append(fut.result())
                    except ProbeError as e:
                        log_event(
                            log,
                            "probe_error",
                            f"[!] {e}",
                            logging.ERROR,
                            port=e.port,
                            stage=e.stage,
                        )
                        results.append(_failed(e, time.perf_counter() - batch_start))
                        if config.abort_on_error and abort is None:
                            abort = e
                            stop.set()

                    if progress is not None:
                        progress.update(1)

                if abort is not None:
                    log_event(log, "scan_aborted", f"[!] Scan aborted: {abort}", logging.ERROR, port=abort.port)
                    raise ScanAborted(abort, sorted(results, key=lambda r: r.port))
        except KeyboardInterrupt:
            # let running captures wind down before the pool joins them
            stop.set()
            raise

    elapsed = time.perf_counter() - start_all
    live = sum(1 for r in results if r.live)
    log_event(
        log,
        "scan_done",
        f"[*] Scanned {len(results)} ports in {elapsed:.1f}s | live={live}",
        logging.DEBUG,
        scanned=len(results),
        live=live,
        elapsed_s=round(elapsed, 4),
    )
    return sorted(results, key=lambda r: r.port)
