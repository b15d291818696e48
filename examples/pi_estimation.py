# Estimate pi with a few workers for about ten seconds, then stop.
import threading

import montepi


def main():
    records = montepi.load_records("runs.ini")
    inside, total = montepi.sum_previous_iterations(records)

    stop = threading.Event()
    timer = threading.Timer(10, stop.set)
    timer.start()
    try:
        montepi.calc_parallel(inside, total, parallelism=4,
                              sync_every=10_000_000, stop_event=stop)
    finally:
        timer.cancel()


if __name__ == '__main__':
    main()
