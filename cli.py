#!/usr/bin/env python3
"""
CLI for the PIF Submission Pipeline.

Usage:
    python cli.py load data/ANO_pif.xlsx --site ANO
    python cli.py validate --site ANO
    python cli.py save --site ANO
    python cli.py finalize --site ANO --submitted-by jdoe
    python cli.py report inflight --site Fleet --output inflight.xlsx
    python cli.py serve --port 8000

Commands:
    load      Replace staging with a spreadsheet extract
    validate  Run the validation checklist
    save      Commit staged data to the site's inflight set
    finalize  Save, then archive eligible lines to approved
    report    Inflight, approved or history views
    init-db   Create database tables
    serve     Start the API server
"""
from pif_app.cli import cli


if __name__ == '__main__':
    cli()
