"""Command-line interface for the gaitkin analyzer"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .config_schema import GaitKinConfig, load_config
from .exceptions import ConfigValidationError, GaitKinError
from .export.json_exporter import convert_numpy
from .pipeline.executor import PipelineExecutor

EPILOG = """
Input formats:
  CSV   timestamp, left_ankle_x, left_ankle_y, left_ankle_visibility, ...
  JSON  [{"timestamp": 0.0, "landmarks": {"leftAnkle": {"x": .., "y": .., "visibility": ..}}}]

Example:
  gaitkin_analyzer --input walk.csv --output results/ --view-mode lateral --distance 10
"""


def apply_overrides(config: GaitKinConfig,
                    view_mode: Optional[str] = None,
                    distance: Optional[float] = None,
                    duration: Optional[float] = None,
                    height: Optional[float] = None,
                    age: Optional[int] = None) -> GaitKinConfig:
    """
    Return a new config with command-line values taking precedence.

    Raises:
        ConfigValidationError: If an override violates the config schema
    """
    data = config.to_dict()
    overrides = {
        ('general', 'view_mode'): view_mode,
        ('session', 'distance_m'): distance,
        ('session', 'duration_s'): duration,
        ('session', 'patient_height_cm'): height,
        ('session', 'patient_age_years'): age,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            data[section][key] = value

    try:
        return GaitKinConfig.from_dict(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = '.'.join(str(part) for part in first['loc'])
        raise ConfigValidationError(field, first.get('input'), first['msg']) from e


def run_pipeline(input_path: Path,
                 output_dir: Path,
                 verbose: bool = False,
                 config: Optional[Union[GaitKinConfig, Dict]] = None) -> Dict[str, Any]:
    """
    Run the complete gait analysis pipeline.

    Args:
        input_path: Landmark recording (CSV or JSON)
        output_dir: Output directory
        verbose: Enable verbose logging
        config: GaitKinConfig or configuration dictionary

    Returns:
        Dictionary with analysis results and metadata
    """
    return PipelineExecutor().execute(input_path, output_dir, verbose=verbose, config=config)


def main():
    """Main entry point for CLI"""
    parser = argparse.ArgumentParser(
        description='gaitkin - 2D landmark gait kinematics and gait event analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG
    )

    parser.add_argument('--input', '-i', type=Path, required=True,
                        help='Path to landmark recording (.csv or .json)')
    parser.add_argument('--output', '-o', type=Path, required=True,
                        help='Output directory for results')
    parser.add_argument('--config', '-c', type=Path,
                        help='YAML configuration file')
    parser.add_argument('--view-mode', choices=['lateral', 'frontal', 'dual'],
                        help='Camera view (overrides config)')
    parser.add_argument('--distance', type=float,
                        help='Walked distance in meters (enables speed and step length)')
    parser.add_argument('--duration', type=float,
                        help='Trial duration in seconds (defaults to the event span)')
    parser.add_argument('--height', type=float,
                        help='Patient height in cm (enables normalized metrics)')
    parser.add_argument('--age', type=int,
                        help='Patient age in years (selects normative reference group)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    args = parser.parse_args()

    if not args.input.exists():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(str(args.config)) if args.config else GaitKinConfig()
        config = apply_overrides(config, args.view_mode, args.distance, args.duration, args.height,
                                 args.age)
    except (GaitKinError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    args.output.mkdir(parents=True, exist_ok=True)

    result = run_pipeline(args.input, args.output, args.verbose, config)
    result.pop('results', None)

    print(json.dumps(convert_numpy(result), indent=2))

    sys.exit(0 if result['status'] == 'success' else 2)


if __name__ == '__main__':
    main()
