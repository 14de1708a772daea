import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tabular_automl.config import get_config
from tabular_automl.exceptions import PipelineError
from tabular_automl.pipeline import InferencePipeline, TrainingPipeline
from tabular_automl.utils.logging_config import initialize_default_logging

logger = logging.getLogger("tabular_automl.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Schema-driven tabular preprocessing and random forest training")
    parser.add_argument("command", choices=["train", "predict"], help="Workflow to run")
    parser.add_argument("--schema-path", help="Schema JSON file or directory (train only)")
    parser.add_argument("--data-path", help="Data CSV file or directory")
    parser.add_argument("--artifacts-dir", help="Directory holding the fitted artifacts")
    parser.add_argument("--output", help="Predictions CSV path (predict only)")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", help="Logging level")
    return parser


def main():
    """Main entry point for training and inference"""
    args = build_parser().parse_args()

    config = get_config(args.config)
    issues = config.validate_config()
    if issues:
        print(f"Error: invalid configuration: {issues}")
        sys.exit(1)

    config.create_directories()
    initialize_default_logging(
        log_level=args.log_level or config.logging_level,
        log_dir=config.paths.LOGS_DIR,
        run_name=args.command
    )

    artifacts_dir = Path(args.artifacts_dir) if args.artifacts_dir else config.paths.ARTIFACTS_DIR

    async def run_train():
        schema_path = args.schema_path or config.paths.INPUT_SCHEMA_DIR
        data_path = args.data_path or config.paths.TRAIN_DIR
        result = await TrainingPipeline(config).run_training(schema_path, data_path, artifacts_dir)
        print("Training completed successfully!")
        print(f"Model columns: {len(result['preprocessing'].feature_columns)}")
        print(f"Artifacts: {artifacts_dir}")

    async def run_predict():
        data_path = args.data_path or config.paths.TEST_DIR
        output = Path(args.output) if args.output else config.paths.PREDICTIONS_DIR / "predictions.csv"
        predictions = await InferencePipeline(config).run_inference(data_path, artifacts_dir)
        output.parent.mkdir(parents=True, exist_ok=True)
        predictions.to_csv(output, index=False)
        print(f"Predictions written to {output} ({len(predictions)} rows)")

    try:
        asyncio.run(run_train() if args.command == "train" else run_predict())
    except (PipelineError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        print(f"Pipeline failed: {type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
