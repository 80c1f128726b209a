"""
CDoS-WiFi: Cascading DoS Mitigation Experiment

This is the main entry point for the packet-length batch. It provides:
- Command-line overrides for the batch parameters
- RNG seeding for reproducibility
- Sequential runs, one per packet length

Usage:
    python main.py [OPTIONS]

Options:
    --seed INT          RNG seed (default: from Config.SEED)
    --stations INT      Number of stations, even (default: from Config.N_STATIONS)
    --stop SECONDS      Simulated duration per run (default: from Config.STOP_TIME)
    --attack-load U     Attacking flow utilization (default: from Config.ATTACK_LOAD)
    --rest-load RHO     Ordinary flow utilization (default: from Config.REST_LOAD)
    --lengths T [T ..]  Packet lengths in bytes (default: from Config.PKT_LENGTHS)
    --rts-cts {0,1}     Enable RTS/CTS (default: from Config.RTS_CTS_ENABLED)
    --output DIR        Output root (default: from Config.OUTPUT_ROOT)

Without options the fixed batch runs: seed 1, 6 stations, 203 s, attacking
load 1, ordinary load 0.14, packet lengths 200 and 1500, RTS/CTS off.
"""

import argparse
import sys
import traceback

from BatchDriver import run_batch
from Config import Config


def parse_args(argv=None):
    """
    Parse command-line arguments for the batch.

    Returns:
        Namespace object with parsed arguments
    """
    p = argparse.ArgumentParser(description="Cascading DoS on Wi-Fi: packet length batch")
    p.add_argument("--seed", type=int, default=Config.SEED)
    p.add_argument("--stations", type=int, default=Config.N_STATIONS)
    p.add_argument("--stop", type=float, default=Config.STOP_TIME, help="NS-3 sim time (s)")
    p.add_argument("--attack-load", type=float, default=Config.ATTACK_LOAD)
    p.add_argument("--rest-load", type=float, default=Config.REST_LOAD)
    p.add_argument("--lengths", type=int, nargs="+", default=list(Config.PKT_LENGTHS))
    p.add_argument("--rts-cts", type=int, choices=[0, 1], default=int(Config.RTS_CTS_ENABLED),
                   help="1=enable RTS/CTS, 0=disable")
    p.add_argument("--output", type=str, default=Config.OUTPUT_ROOT)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    print("Starting cascading DoS batch...")
    try:
        outputs = run_batch(
            seed=args.seed,
            station_count=args.stations,
            duration=args.stop,
            attacking_utilization=args.attack_load,
            ordinary_utilization=args.rest_load,
            packet_lengths=args.lengths,
            handshake_enabled=bool(args.rts_cts),
            output_root=args.output,
        )
    except Exception as e:
        print(f"❌ Batch failed: {e}")
        traceback.print_exc()
        raise

    print("\n─── Batch Results ───")
    for out in outputs:
        print(f"{out.run_dir}  (sim end {out.sim_time_end:.1f}s, {len(out.flows)} flows)")
    print("✅ Batch completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
