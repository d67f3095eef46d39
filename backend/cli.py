# backend/cli.py
import json

import click
from flask import Flask, current_app
from flask.cli import with_appcontext
from sqlalchemy import text

from client.filters import FilterCriteria
from client.map_view import FACILITY_API_URL, MapClient
from client.render import render_map
from services.geojson import FeatureCollection
from services.loader import init_schema, load_facilities


def _database():
    return current_app.extensions["database"]


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Enable PostGIS and create the health_facilities table and indexes."""
    with _database().session() as s:
        init_schema(s)
    click.echo("database schema ready")


@click.command("load-facilities")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def load_facilities_command(path):
    """Replace all facilities with the Point features of a GeoJSON file."""
    with open(path, "r", encoding="utf-8") as f:
        fc = FeatureCollection.from_dict(json.load(f))
    with _database().session() as s:
        n = load_facilities(s, fc)
    click.echo(f"inserted {n} facilities")


@click.command("check-db")
@with_appcontext
def check_db_command():
    """Print PostgreSQL / PostGIS versions to confirm connectivity."""
    with _database().session() as s:
        pg = s.execute(text("SELECT version()")).scalar_one()
        postgis = s.execute(text("SELECT PostGIS_version()")).scalar_one()
    click.echo(f"PostgreSQL: {pg}")
    click.echo(f"PostGIS: {postgis}")


@click.command("render-map")
@click.argument("out", type=click.Path(dir_okay=False))
@click.option("--base-url", default=None, help="Facility API root, defaults to FACILITY_API_URL.")
@click.option("--polygons", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--base-map", type=click.Choice(["standard", "satellite", "dark"]), default="standard")
@click.option("--type", "facility_type", default="all")
@click.option("--operator", type=click.Choice(["all", "public", "private"]), default="all")
@click.option("--district", default="all")
@click.option("--search", default="")
@click.option("--coverage/--no-coverage", default=False)
@click.option("--near", nargs=2, type=float, default=None, metavar="LAT LNG",
              help="Highlight the nearest visible facility to this point.")
def render_map_command(out, base_url, polygons, base_map, facility_type, operator, district, search, coverage, near):
    """Fetch facilities from a running API and write an HTML map."""
    client = MapClient(base_url or FACILITY_API_URL)
    if not client.load():
        raise click.ClickException(client.error)
    if polygons:
        client.load_polygons(polygons)
    client.criteria = FilterCriteria(
        facility_type=facility_type,
        operator=operator,
        district=district,
        search=search,
        show_coverage=coverage,
    )
    if near:
        result = client.find_nearest(lambda: tuple(near))
        if result is not None:
            click.echo(f"nearest: {result.feature.properties.get('name') or 'Unnamed'} "
                       f"({client.distance_to_user_km:.2f} km)")
    render_map(client, base_map=base_map).save(out)
    click.echo(f"map written to {out}")


def register_commands(app: Flask) -> None:
    for command in (init_db_command, load_facilities_command, check_db_command, render_map_command):
        app.cli.add_command(command)
