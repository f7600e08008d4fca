"""CLI interface for LegacyParity"""

import click
import json
from pathlib import Path
from typing import Optional
import logging

from dotenv import load_dotenv

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# .env must be loaded before the config module reads the environment
load_dotenv()

from legacyparity.config import SERVER_CONFIG, TRANSLATION_CONFIG, TRANSLATION_MODELS, get_config
from legacyparity.ai_integration import get_translator
from legacyparity.execution import BuildExecutor
from legacyparity.pipeline import ModernizationPipeline
from legacyparity.tasks import EvaluationTask, SourceLocation


@click.group()
@click.version_option(version="1.0.0")
def main():
    """LegacyParity - differential validation of AI-modernized legacy programs

    Translates a COBOL/Assembler program with an LLM, builds and runs both
    versions against the same fixture input, and compares their outputs.
    """
    pass


@main.command()
@click.option("--host", default=SERVER_CONFIG["host"], help="Bind address")
@click.option("--port", default=SERVER_CONFIG["port"], type=int, help="Bind port")
@click.option("--model", default=None, type=click.Choice(list(TRANSLATION_MODELS)),
              help=f"Translation model (default: {TRANSLATION_CONFIG['default_model']})")
@click.option("--mock", is_flag=True, default=False, help="Use a fixed translation when no API key is set")
def serve(host: str, port: int, model: Optional[str], mock: bool):
    """Serve the POST /evaluate endpoint"""
    import uvicorn
    from legacyparity.server import create_app

    pipeline = ModernizationPipeline(translator=get_translator(model, mock_mode=mock))
    click.echo(f"LegacyParity online at {host}:{port}")
    uvicorn.run(create_app(pipeline), host=host, port=port)


@main.command()
@click.option("--task-id", required=True, help="Task ID")
@click.option("--bucket", required=True, help="Bucket holding the legacy source and fixture record")
@click.option("--key", required=True, help="Object key of the legacy source (e.g., src/interest.cbl)")
@click.option("--model", default=None, type=click.Choice(list(TRANSLATION_MODELS)),
              help=f"Translation model (default: {TRANSLATION_CONFIG['default_model']})")
@click.option("--mock", is_flag=True, default=False, help="Use a fixed translation when no API key is set")
@click.option("--output", type=click.Path(), help="Write the full report as JSON")
def evaluate(task_id: str, bucket: str, key: str, model: Optional[str], mock: bool,
             output: Optional[str]):
    """Run one modernization-validation task"""
    task = EvaluationTask(task_id=task_id, source_location=SourceLocation(bucket=bucket, key=key))
    pipeline = ModernizationPipeline(translator=get_translator(model, mock_mode=mock))

    report = pipeline.run(task)

    marker = "[OK]" if report.matched else "[FAIL]"
    click.echo(f"\n{marker} {report.task_id}: {report.status_message}")
    if report.category:
        click.echo(f"  Category: {report.category}")
    click.echo(f"  Candidate: {report.candidate_url or '-'}")
    click.echo(f"  Transcript: {report.transcript_url or '-'}")
    for diagnostic in report.diagnostics:
        click.echo(f"  {diagnostic}")

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(report.to_dict(), f, indent=2)
        click.echo(f"\nReport saved to {output_path}")

    if report.failed_stage:
        raise SystemExit(1)


@main.command("config")
def show_config():
    """Print the effective configuration"""
    click.echo(json.dumps(get_config(), indent=2, default=str))


@main.command()
def doctor():
    """Check that the toolchains are installed"""
    found = BuildExecutor().check_toolchains()
    for variant, path in found.items():
        if path:
            click.echo(f"[OK] {variant}: {path}")
        else:
            click.echo(f"[MISSING] {variant}")
    if not all(found.values()):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
