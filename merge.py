#!/usr/bin/env python3
import sys
import traceback

from consolidator import config
from consolidator.pipeline.io import append_run_log, write_error_log
from consolidator.pipeline.merge import OutputWriteError, merge_all
from consolidator.pipeline.metrics import format_source_summary
from consolidator.pipeline.report import format_merge_summary
from consolidator.utils.dates import utcnow

LOG_PATH = config.OUTPUT_DIR / config.LOG_FILENAME
ERROR_LOG_PATH = config.OUTPUT_DIR / config.ERROR_LOG_FILENAME


def main():
    run_timestamp = utcnow().isoformat() + "Z"
    log_lines = []  # Collect log entries

    def log(message, level="INFO"):
        """Log a message to both console and log buffer."""
        timestamp = utcnow().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] [{level}] {message}"
        print(message)
        log_lines.append(log_entry)

    log(f"Starting merge run at {run_timestamp}")

    exit_code = 0
    try:
        result = merge_all(log_func=log)

        log("")
        for line in format_source_summary(result["sourceMetrics"]):
            log(line)

        failed_sources = [m.name for m in result["sourceMetrics"] if m.errors]
        if failed_sources:
            log(f"WARNING: Failed to load: {', '.join(failed_sources)}", "ERROR")

        log("")
        for line in format_merge_summary(result["report"]):
            log(line)

    except Exception as e:
        exit_code = 1
        error_trace = traceback.format_exc()
        log(f"ERROR: Merge failed: {e}", "ERROR")
        log(f"  Traceback:\n{error_trace}", "ERROR")

        written = e.written if isinstance(e, OutputWriteError) else []
        if written:
            message = f"{e} (already replaced: {', '.join(written)})"
        else:
            message = f"{e} (no output files were replaced)"
        write_error_log(ERROR_LOG_PATH, message, error_trace)
        log(f"Error log saved to {ERROR_LOG_PATH}", "ERROR")

    # Save log file (time-based retention)
    append_run_log(LOG_PATH, log_lines, retention_days=config.LOG_RETENTION_DAYS)
    print(f"Log saved to {LOG_PATH}")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
