"""CLI for kiosk-form template resolution and application."""

import json
import shutil
from pathlib import Path
from typing import Annotated

import jsonschema
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from kiosk_form import __version__
from kiosk_form.application import ApplyOptions
from kiosk_form.config import (
    GlobalConfig,
    get_kiosk_form_home,
    get_registry_path,
    load_global_config,
    save_global_config,
)
from kiosk_form.filtering import FilteredQuestion, FilterOptions
from kiosk_form.log import configure_logging
from kiosk_form.pipeline import Pipeline, PipelineConfig
from kiosk_form.registry import DepartmentRuleSet, QuestionTemplate, QuestionType
from kiosk_form.registry.files import RULE_SET_SCHEMA, SCHEMA_DIR, TEMPLATE_SCHEMA
from kiosk_form.registry.stores import StoreError
from kiosk_form.resolution import ConsultationContext
from kiosk_form.validation import validate_rule_set, validate_template

app = typer.Typer(
    name="kiosk-form",
    help="Template resolution and application for kiosk feedback questionnaires.",
    no_args_is_help=True,
)
console = Console()

RegistryOption = Annotated[
    Path | None,
    typer.Option(
        "--registry",
        "-r",
        envvar="KIOSK_FORM_REGISTRY",
        help="Registry directory (default: from config.yaml)",
    ),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"kiosk-form version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (default: from config.yaml)"),
    ] = None,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Emit logs as JSON lines"),
    ] = False,
) -> None:
    """kiosk-form: template resolution and application for kiosk questionnaires."""
    config = load_global_config()
    configure_logging(
        level=log_level or config.log_level,
        fmt="json" if log_json else config.log_format,
    )


def _pipeline(registry: Path | None, filter_options: FilterOptions | None = None) -> Pipeline:
    registry_path = registry or get_registry_path()
    if not registry_path.exists():
        console.print(f"[red]Error:[/red] Registry not found: {registry_path}")
        raise typer.Exit(1)

    return Pipeline(
        PipelineConfig(
            registry_path=registry_path,
            filter_options=filter_options or FilterOptions(),
        )
    )


def _question_table(title: str, questions: list[FilteredQuestion]) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("ID")
    for question in questions:
        table.add_row(
            str(question.order_index),
            question.title,
            question.type.value if question.type else "-",
            "yes" if question.required else "no",
            question.id,
        )
    return table


@app.command()
def init(
    source: Annotated[
        Path | None,
        typer.Option("--from", "-f", help="Source registry directory to copy"),
    ] = None,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing registry"),
) -> None:
    """Initialize configuration and copy a registry into the kiosk-form home.

    Creates:
      ~/.config/kiosk-form/config.yaml
      ~/.config/kiosk-form/registry/
    """
    home = get_kiosk_form_home()
    registry_dest = home / "registry"

    if source is None:
        source = Path.cwd() / "registry"

    if not (source / "templates").exists():
        console.print(f"[red]Error:[/red] No templates directory in {source}")
        console.print("Use --from to specify the source registry")
        raise typer.Exit(1)

    if registry_dest.exists() and not force:
        console.print(f"[yellow]Warning:[/yellow] Registry already exists at {registry_dest}")
        console.print("Use --force to overwrite")
        raise typer.Exit(1)

    console.print(f"[bold]Initializing kiosk-form at {home}[/bold]")
    home.mkdir(parents=True, exist_ok=True)
    if registry_dest.exists():
        shutil.rmtree(registry_dest)
    shutil.copytree(source, registry_dest)

    template_count = len(list(registry_dest.glob("templates/*.json")))
    rule_set_count = len(list(registry_dest.glob("rule-sets/*.json")))
    console.print(f"  [green]✓[/green] {template_count} templates synced")
    console.print(f"  [green]✓[/green] {rule_set_count} rule sets synced")

    config_path = save_global_config(GlobalConfig(default_registry_path=str(registry_dest)))
    console.print(f"  [green]✓[/green] Created config at {config_path}")


@app.command()
def resolve(
    department: Annotated[str, typer.Option("--department", "-d", help="Department name")],
    consultation_number: Annotated[
        int, typer.Option("--number", "-n", min=1, help="Consultation (visit) number")
    ],
    patient_id: Annotated[str, typer.Option("--patient", "-p", help="Patient ID")] = "cli",
    registry: RegistryOption = None,
) -> None:
    """Show which template a consultation resolves to."""
    pipeline = _pipeline(registry)
    selection = pipeline.resolver.select_template(
        ConsultationContext(
            consultation_number=consultation_number,
            department=department,
            patient_id=patient_id,
        )
    )

    console.print(f"[bold]Source:[/bold] {selection.source.value}")
    console.print(f"[bold]Questionnaire type:[/bold] {selection.questionnaire_type}")
    console.print(
        "[bold]Expected type by visit number:[/bold] "
        f"{pipeline.resolver.get_consultation_type(consultation_number)}"
    )
    if selection.rule_description:
        console.print(f"[bold]Rule:[/bold] {selection.rule_description}")
    if selection.template is None:
        console.print("[yellow]No template configured; the caller's defaults apply[/yellow]")
    else:
        console.print(f"[bold]Template:[/bold] {selection.template.name} ({selection.template.id})")


@app.command()
def rules(registry: RegistryOption = None) -> None:
    """List department rule sets and the templates they route to."""
    pipeline = _pipeline(registry)
    try:
        rule_sets = pipeline.store.list_rule_sets()
        rows = []
        for rule_set in rule_sets:
            entries = [
                (str(rule.consultation_number), rule.template_id, rule.description)
                for rule in sorted(rule_set.rules, key=lambda r: r.consultation_number)
            ]
            if rule_set.default_template_id:
                entries.append(("default", rule_set.default_template_id, ""))
            for visit, template_id, description in entries:
                missing = pipeline.store.find_template_by_id(template_id) is None
                rows.append((rule_set.department, visit, template_id, description, missing))
    except StoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not rule_sets:
        console.print("[yellow]No rule sets configured[/yellow]")
        return

    table = Table(title="Rule sets")
    table.add_column("Department")
    table.add_column("Visit", justify="right")
    table.add_column("Template")
    table.add_column("Description")
    for department, visit, template_id, description, missing in rows:
        template = f"[red]{template_id} (missing)[/red]" if missing else template_id
        table.add_row(department, visit, template, description)
    console.print(table)

    dangling = sum(1 for row in rows if row[4])
    if dangling:
        console.print(f"[yellow]{dangling} rules point at missing templates[/yellow]")


@app.command()
def questionnaire(
    department: Annotated[str, typer.Option("--department", "-d", help="Department name")],
    consultation_number: Annotated[
        int, typer.Option("--number", "-n", min=1, help="Consultation (visit) number")
    ],
    patient_id: Annotated[str, typer.Option("--patient", "-p", help="Patient ID")] = "cli",
    required_only: Annotated[
        bool, typer.Option("--required-only", help="Drop optional questions")
    ] = False,
    max_questions: Annotated[
        int | None,
        typer.Option(
            "--max-questions",
            min=1,
            help="Truncate to N questions (default: max_questions from config.yaml)",
        ),
    ] = None,
    exclude_type: Annotated[
        list[QuestionType] | None,
        typer.Option("--exclude-type", help="Question type to leave out (repeatable)"),
    ] = None,
    registry: RegistryOption = None,
) -> None:
    """Render the questions a patient would see."""
    filter_options = FilterOptions(
        include_optional=not required_only,
        max_questions=max_questions or load_global_config().max_questions,
        exclude_types=set(exclude_type or []),
    )
    pipeline = _pipeline(registry, filter_options)
    try:
        result = pipeline.questionnaire_for(
            ConsultationContext(
                consultation_number=consultation_number,
                department=department,
                patient_id=patient_id,
            )
        )
    except StoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    title = result.template_name or "Active questions"
    console.print(_question_table(f"{title} ({result.source.value})", result.questions))
    stats = pipeline.question_filter.get_question_stats(result.questions)
    console.print(
        f"{stats.total} questions: {stats.required} required, {stats.optional} optional"
    )


@app.command()
def apply(
    template_ids: Annotated[list[str], typer.Argument(help="Template IDs, applied in order")],
    replace: Annotated[
        bool, typer.Option("--replace", help="Deactivate current questions first")
    ] = False,
    preserve_order: Annotated[
        bool,
        typer.Option("--preserve-order/--renumber", help="Keep template order indices"),
    ] = True,
    skip_validation: Annotated[
        bool, typer.Option("--skip-validation", help="Create questions without validating")
    ] = False,
    created_by: Annotated[str, typer.Option("--created-by", help="Acting admin")] = "admin",
    registry: RegistryOption = None,
) -> None:
    """Apply one or more templates to the active question set."""
    pipeline = _pipeline(registry)
    options = ApplyOptions(
        replace_existing=replace,
        preserve_order=preserve_order,
        skip_validation=skip_validation,
        created_by=created_by,
    )
    if len(template_ids) == 1:
        result = pipeline.applier.apply_template(template_ids[0], options)
    else:
        result = pipeline.applier.apply_multiple_templates(template_ids, options)

    console.print(f"[green]Applied:[/green] {result.applied_questions}")
    if result.skipped_questions:
        console.print(f"[yellow]Skipped:[/yellow] {result.skipped_questions}")
    for error in result.errors:
        console.print(f"  [red]•[/red] {error}")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def preview(
    template_id: Annotated[str, typer.Argument(help="Template ID")],
    registry: RegistryOption = None,
) -> None:
    """Dry-run a template application."""
    pipeline = _pipeline(registry)
    result = pipeline.applier.preview_template_application(template_id)
    if not result.success:
        for error in result.errors:
            console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1)

    table = Table(title=f"Preview of {template_id}")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Valid")
    table.add_column("Problems")
    for entry in result.preview:
        table.add_row(
            str(entry.index),
            entry.title,
            entry.type.value if entry.type else "-",
            "[green]yes[/green]" if entry.valid else "[red]no[/red]",
            "; ".join(entry.errors),
        )
    console.print(table)
    console.print(
        f"{result.questions_to_create} to create, {result.questions_with_errors} with errors"
    )


@app.command()
def compat(
    template_id: Annotated[str, typer.Argument(help="Template ID")],
    registry: RegistryOption = None,
) -> None:
    """Check a template for conflicts with the active questions."""
    pipeline = _pipeline(registry)
    result = pipeline.applier.get_template_compatibility(template_id)
    if not result.success:
        for line in result.recommendations:
            console.print(f"[red]Error:[/red] {line}")
        raise typer.Exit(1)

    if result.compatible:
        console.print("[green]Compatible:[/green] no conflicts")
    else:
        table = Table(title=f"Conflicts for {template_id}")
        table.add_column("#", justify="right")
        table.add_column("Template question")
        table.add_column("Conflict")
        table.add_column("Existing question")
        for conflict in result.conflicts:
            table.add_row(
                str(conflict.template_question_index),
                conflict.template_question_title,
                conflict.conflict_type,
                f"{conflict.existing_question_title} ({conflict.existing_question_id})",
            )
        console.print(table)
    for line in result.recommendations:
        console.print(f"  • {line}")


@app.command()
def validate(
    spec_type: Annotated[str, typer.Argument(help="Document type: template, rules")],
    spec_path: Annotated[Path, typer.Argument(help="Path to the JSON document")],
) -> None:
    """Validate a template or rule-set document."""
    if spec_type == "template":
        schema_name, model, check = TEMPLATE_SCHEMA, QuestionTemplate, validate_template
    elif spec_type == "rules":
        schema_name, model, check = RULE_SET_SCHEMA, DepartmentRuleSet, validate_rule_set
    else:
        console.print(f"[red]Error:[/red] Unknown document type: {spec_type}")
        raise typer.Exit(1)

    if not spec_path.exists():
        console.print(f"[red]Error:[/red] File not found: {spec_path}")
        raise typer.Exit(1)

    try:
        with open(spec_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]Invalid:[/red] Expected a JSON object")
        raise typer.Exit(1)
    with open(SCHEMA_DIR / schema_name) as f:
        schema = json.load(f)

    if spec_type == "template":
        data.setdefault("id", spec_path.stem)
    try:
        jsonschema.validate(data, schema)
        document = model.model_validate(data)
    except jsonschema.ValidationError as e:
        console.print(f"[red]Invalid:[/red] {e.message}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid:[/red] {e}")
        raise typer.Exit(1)

    result = check(document)
    if not result.is_valid:
        console.print(f"[red]Invalid:[/red] {spec_path}")
        for error in result.errors:
            console.print(f"  [red]•[/red] {error}")
        raise typer.Exit(1)
    console.print(f"[green]Valid:[/green] {spec_path}")


if __name__ == "__main__":
    app()
