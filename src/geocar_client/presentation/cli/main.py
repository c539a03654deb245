from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer

from geocar_client.domain.errors import GeoCarError
from geocar_client.domain.services.geometry import centered_region
from geocar_client.domain.value_objects.region import Region
from geocar_client.infrastructure.container import Container, build_container

app = typer.Typer(help="CAR property map client: session and geospatial lookups")

T = TypeVar("T")


def _run(fn: Callable[[Container], Awaitable[T]]) -> T:
    async def main() -> T:
        container = build_container()
        try:
            return await fn(container)
        finally:
            await container.aclose()

    try:
        return asyncio.run(main())
    except GeoCarError as e:
        typer.echo(f"Erro: {e}", err=True)
        raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def login(email: str = typer.Option(..., "--email", "-e"), password: str = typer.Option(..., prompt=True, hide_input=True)) -> None:
    """Step 1: email + password; a code is sent by email."""
    _run(lambda c: c.session.login_start(email, password))
    typer.echo("Código enviado. Use `geocar verify` para concluir.")


@app.command()
def verify(email: str = typer.Option(..., "--email", "-e"), code: str = typer.Option(..., "--code", "-c")) -> None:
    """Step 2: confirm the emailed code and store the access token."""
    profile = _run(lambda c: c.session.login_verify(email, code))
    typer.echo(f"Bem-vindo, {profile.name} ({profile.role})")


@app.command()
def guest() -> None:
    profile = _run(lambda c: c.session.guest_login())
    typer.echo(f"Sessão de visitante: {profile.name or profile.id}")


@app.command()
def me() -> None:
    profile = _run(lambda c: c.session.hydrate())
    for key, value in profile.to_dict().items():
        if key != "api_key":
            typer.echo(f"{key}: {value}")


@app.command()
def logout() -> None:
    _run(lambda c: c.session.logout())
    typer.echo("Sessão encerrada")


@app.command()
def resolve(text: str, region: str = typer.Option("br", "--region", "-r")) -> None:
    """Resolve an address, place name or Plus Code into coordinates."""
    found = _run(lambda c: c.resolver.resolve_or_raise(text, region=region))
    typer.echo(f"{found.lat},{found.lng}  {found.description or ''}".rstrip())


@app.command()
def viewport(
    lat: float = typer.Option(..., "--lat"),
    lng: float = typer.Option(..., "--lng"),
    delta: float = typer.Option(0.01, "--delta", "-d"),
) -> None:
    """List the properties intersecting the region centred on lat/lng."""
    region: Region = centered_region(lat, lng, delta)
    features = _run(lambda c: c.viewport.load(region)) or []
    for f in features:
        center = f"{f.center.lat:.6f},{f.center.lng:.6f}" if f.center else "-"
        typer.echo(f"{f.id}\t{f.attributes.get('cod_imovel', '')}\t{center}")
    typer.echo(f"Imóveis: {len(features)}")


@app.command()
def near(
    lat: float = typer.Option(..., "--lat"),
    lng: float = typer.Option(..., "--lng"),
    radius_km: float = typer.Option(1.0, "--radius-km"),
    limit: int = typer.Option(10, "--limit"),
) -> None:
    data: Any = _run(lambda c: c.geo.fetch_near(lat, lng, radius_km=radius_km, limit=limit))
    items = data.get("items", []) if isinstance(data, dict) else data or []
    typer.echo(f"Imóveis próximos: {len(items)}")


@app.command()
def properties(cpf: str = typer.Option("", "--search-cpf", help="Link CAR records registered under this CPF first")) -> None:
    """List the properties linked to the logged-in user."""

    async def list_properties(c: Container):
        if cpf:
            found = await c.properties.search_by_cpf(cpf)
            typer.echo(f"{found.message} ({found.total})")
        return await c.properties.list()

    for p in _run(list_properties):
        typer.echo(f"{p.id}\t{p.display_name}\t{p.registry_number or '-'}")


if __name__ == "__main__":
    app()
