"""QR Studio CLI tool (qrctl)."""

import json
import os
from typing import Optional

import typer

app = typer.Typer(name="qrctl", help="QR Studio CLI")
db_app = typer.Typer(help="Database management commands")
payload_app = typer.Typer(help="Print the text a scanner reads for a QR payload")
app.add_typer(db_app, name="db")
app.add_typer(payload_app, name="payload")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    from qrstudio.db.base import Base
    from qrstudio.db.session import engine
    import qrstudio.models  # noqa: F401  registers every table

    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed")
def db_seed(
    sample: bool = typer.Option(False, "--sample", help="Also add demo QR codes"),
):
    """Seed feature flags and the super admin."""
    from qrstudio.db.session import SessionLocal
    from qrstudio.db.seeds.seed_feature_flags import seed_feature_flags
    from qrstudio.db.seeds.seed_super_admin import seed_super_admin
    from qrstudio.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        seed_feature_flags(db)
        seed_super_admin(db)
        if sample:
            seed_sample_data(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop and recreate every table (DANGER)."""
    if not yes:
        confirm = typer.confirm("⚠️  This will DROP all QR Studio tables. Continue?")
        if not confirm:
            raise typer.Abort()
    from qrstudio.db.base import Base
    from qrstudio.db.session import engine
    import qrstudio.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Database reset")


@app.command("import")
def import_file(
    file_path: str = typer.Argument(..., help="CSV or Excel file to import"),
    owner: str = typer.Option(..., "--owner", help="Email of the user who will own the codes"),
    name_column: str = typer.Option(..., "--name-column", help="Column holding the QR name"),
    content_column: str = typer.Option(..., "--content-column", help="Column holding the QR content"),
    qr_type: str = typer.Option("url", "--type", help="url, text, email or phone"),
):
    """Bulk-create QR codes from a spreadsheet, one per row."""
    from qrstudio.core.exceptions import QRStudioError
    from qrstudio.db.session import SessionLocal
    from qrstudio.models.profile import Profile
    from qrstudio.services.bulk_service import BulkImportSession
    from qrstudio.services.qr_service import qr_service

    with open(file_path, "rb") as f:
        content = f.read()

    db = SessionLocal()
    try:
        user = db.query(Profile).filter(Profile.email == owner.strip().lower()).first()
        if user is None:
            typer.echo(f"❌ No user with email {owner}", err=True)
            raise typer.Exit(code=1)

        session = BulkImportSession()
        try:
            session.upload(os.path.basename(file_path), content)
            session.set_qr_type(qr_type)
            session.map_field("name", name_column)
            session.map_field("content", content_column)
            report = session.generate(lambda request: qr_service.create(db, user, request))
        except QRStudioError as e:
            typer.echo(f"❌ {e.message}", err=True)
            raise typer.Exit(code=1)
    finally:
        db.close()

    typer.echo(
        f"✅ {report.created_count} created, {report.skipped_count} skipped, {report.failed_count} failed"
    )
    for outcome in report.outcomes:
        if outcome.status != "created":
            typer.echo(f"  row {outcome.row}: {outcome.status} ({outcome.reason})")


@payload_app.command("wifi")
def payload_wifi(
    ssid: str = typer.Argument(..., help="Network name"),
    password: str = typer.Option("", help="Network password"),
    security: str = typer.Option("WPA", help="WPA, WEP or nopass"),
    hidden: bool = typer.Option(False, "--hidden", help="Network is hidden"),
):
    """WiFi join string."""
    from qrstudio.services.qr_formats import format_wifi_data

    typer.echo(format_wifi_data(ssid, password, security, hidden))


@payload_app.command("vcard")
def payload_vcard(
    name: str = typer.Argument(..., help="Full name"),
    organization: Optional[str] = typer.Option(None, help="Company"),
    title: Optional[str] = typer.Option(None, help="Job title"),
    phone: Optional[str] = typer.Option(None, help="Phone number"),
    email: Optional[str] = typer.Option(None, help="Email address"),
    website: Optional[str] = typer.Option(None, help="Website URL"),
    as_json: bool = typer.Option(False, "--json", help="Wrap the payload in JSON"),
):
    """vCard 3.0 contact block."""
    from qrstudio.services.qr_formats import format_vcard_data

    text = format_vcard_data({
        "name": name,
        "organization": organization,
        "title": title,
        "phone": phone,
        "email": email,
        "website": website,
    })
    typer.echo(json.dumps({"payload": text}) if as_json else text)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("qrstudio.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
