#!/usr/bin/env python3
"""
Aquarium Visitor Simulation

Autonomous visitors wander an aquarium floor, path-find to tanks, watch
them until satisfied and leave through the nearest entrance.

Usage:
    aquarium-visitors --config configs/aquarium.yaml [options]

Examples:
    aquarium-visitors --config configs/aquarium.yaml
    aquarium-visitors --config configs/aquarium.yaml --gif --out-dir results/
    aquarium-visitors --config configs/aquarium.yaml --no-csv --no-snapshot --quiet
    aquarium-visitors --config configs/aquarium.yaml --seed 42 --movement direct
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from aquarium_visitors.config import MOVEMENT_MODES, load_config
from aquarium_visitors.model.engine import SimulationEngine
from aquarium_visitors.export.csv_writer import CSVWriter
from aquarium_visitors.export.visualizer import Visualizer
from aquarium_visitors.export.reporter import Reporter

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Aquarium Visitor Simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    aquarium-visitors --config configs/aquarium.yaml
    aquarium-visitors --config configs/aquarium.yaml --gif --out-dir results/
    aquarium-visitors --config configs/aquarium.yaml --no-csv --no-snapshot --quiet
    aquarium-visitors --config configs/aquarium.yaml --seed 42 --movement direct
        """
    )

    # Required arguments
    parser.add_argument('--config', type=Path, required=True,
                        help='Path to YAML configuration file')

    # Optional overrides
    parser.add_argument('--steps', type=int, default=None,
                        help='Override max simulation steps')
    parser.add_argument('--out-dir', type=Path, default=Path('./output'),
                        help='Output directory for exports (default: ./output)')
    parser.add_argument('--movement', choices=MOVEMENT_MODES, default=None,
                        help='Override movement mode (routed: A* + steering, '
                             'direct: straight line)')

    # Export toggles
    parser.add_argument('--csv', dest='csv', action='store_true', default=None,
                        help='Enable CSV export (default)')
    parser.add_argument('--no-csv', dest='csv', action='store_false',
                        help='Disable CSV export')

    parser.add_argument('--snapshot', dest='snapshot', action='store_true', default=None,
                        help='Enable final snapshot (default)')
    parser.add_argument('--no-snapshot', dest='snapshot', action='store_false',
                        help='Disable final snapshot')

    parser.add_argument('--gif', action='store_true', default=False,
                        help='Enable GIF animation export')

    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Suppress stdout output')

    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducibility')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level for simulation diagnostics '
                             '(default: WARNING)')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        return 1
    except (ValueError, KeyError, TypeError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    # Apply CLI overrides
    if args.steps is not None:
        config.max_steps = args.steps
    if args.csv is not None:
        config.csv_enabled = args.csv
    if args.snapshot is not None:
        config.snapshot_enabled = args.snapshot
    if args.gif:
        config.gif_enabled = True
    if args.movement is not None:
        config.movement.mode = args.movement
    config.quiet = args.quiet
    if args.seed is not None:
        config.seed = args.seed
    config.out_dir = args.out_dir

    # Initialize engine
    if not config.quiet:
        print("Initializing simulation...")
        print(f"  Grid: {config.grid.width}x{config.grid.depth}")
        print(f"  Tanks: {len(config.layout.tanks)}, "
              f"Entrances: {len(config.layout.entrances)}")
        print(f"  Movement: {config.movement.mode}")
        print(f"  Max steps: {config.max_steps}")

    try:
        engine = SimulationEngine(config)
    except ValueError as e:
        print(f"Error building layout: {e}", file=sys.stderr)
        return 1

    # Initialize exporters
    csv_path = config.out_dir / 'visitor_log.csv'
    csv_writer = None
    if config.csv_enabled:
        csv_writer = CSVWriter(csv_path)
        csv_writer.open()

    visualizer = Visualizer(engine.grid)
    reporter = Reporter(str(args.config), config.seed)

    # Main simulation loop
    if not config.quiet:
        print("\nRunning simulation...")

    final_state = None
    try:
        while not engine.is_finished():
            state = engine.step()
            final_state = state

            if csv_writer:
                csv_writer.append(state)

            # Buffer GIF frame (every N steps to reduce memory)
            if config.gif_enabled:
                if state.step % 5 == 0 or engine.is_finished():
                    visualizer.buffer_frame(state)

            reporter.update(state)

            # Progress indicator
            if not config.quiet and state.step % 100 == 0:
                active = int(state.metrics.get('active_visitors', 0))
                departed = int(state.metrics.get('departed', 0))
                print(f"  Step {state.step}: {active} inside, {departed} departed")

    except KeyboardInterrupt:
        if not config.quiet:
            print("\nSimulation interrupted by user.")
    finally:
        if csv_writer:
            csv_writer.close()

    logger.info("Simulation stopped after %d steps", engine.current_step)

    if csv_writer and not config.quiet:
        print(f"\nCSV saved: {csv_path}")

    if config.snapshot_enabled and final_state:
        snapshot_path = config.out_dir / 'final_state.png'
        visualizer.save_snapshot(final_state, snapshot_path)
        if not config.quiet:
            print(f"Snapshot saved: {snapshot_path}")

    if config.gif_enabled:
        gif_path = config.out_dir / 'simulation.gif'
        if not config.quiet:
            print(f"Generating GIF ({len(visualizer.frames)} frames)...")
        visualizer.generate_gif(gif_path, fps=10)
        if not config.quiet:
            print(f"Animation saved: {gif_path}")

    # Print summary report
    if not config.quiet and final_state:
        report = reporter.generate_summary(
            final_state,
            config.out_dir,
            config.csv_enabled,
            config.snapshot_enabled,
            config.gif_enabled,
            busiest_cells=engine.footfall.hotspots()
        )
        print(report)

    return 0


if __name__ == '__main__':
    sys.exit(main())
