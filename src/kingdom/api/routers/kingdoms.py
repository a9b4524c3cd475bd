"""Kingdom lifecycle, command and query endpoints."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, HTTPException, Request

from kingdom.api.schemas import (
    AdvanceResponse,
    BuildRequest,
    CommandResponse,
    CreateKingdomRequest,
    KingdomResponse,
    KingdomSummary,
    ProgressResponse,
    TimedRequest,
)
from kingdom.core.game import CommandResult, KingdomGame

router = APIRouter()


def _manager(request: Request):
    return request.app.state.session_manager


def _not_found(kingdom_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Kingdom '{kingdom_id}' not found")


def _kingdom_response(kingdom_id: str, name: str, game: KingdomGame) -> dict[str, Any]:
    state = game.state
    return {
        "id": kingdom_id,
        "name": name,
        "now": game.clock,
        "resources": state.ledger.as_dict(),
        "plots": [game.get_plot(i) for i in range(len(state.grid))],
        "next_plot_cost": state.grid.next_plot_cost,
        "is_starving": state.is_starving,
        "active_event": game.get_active_event(),
        "config": game.config.to_dict(),
    }


def _command(request: Request, kingdom_id: str, req: TimedRequest | None,
             command: Callable[[KingdomGame, int], CommandResult]) -> dict[str, Any]:
    now = req.now if req is not None else None
    try:
        result = _manager(request).execute(kingdom_id, command, now=now)
    except KeyError:
        raise _not_found(kingdom_id)
    return result.to_dict()


def _query(request: Request, kingdom_id: str, now: int | None,
           query: Callable[[KingdomGame, int], Any]) -> Any:
    try:
        return _manager(request).query(kingdom_id, query, now=now)
    except KeyError:
        raise _not_found(kingdom_id)


def _check_index(game: KingdomGame, index: int) -> None:
    if not game.state.grid.in_range(index):
        raise HTTPException(status_code=404, detail=f"Plot {index} does not exist")


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------

@router.post("", response_model=KingdomResponse)
def create_kingdom(req: CreateKingdomRequest, request: Request):
    mgr = _manager(request)
    try:
        session = mgr.create_kingdom(name=req.name, preset=req.preset,
                                     config=req.config, now=req.now)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TypeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid config: {e}")
    return _kingdom_response(session.id, session.name, session.game)


@router.get("", response_model=list[KingdomSummary])
def list_kingdoms(request: Request):
    return _manager(request).list_kingdoms()


@router.get("/{kingdom_id}", response_model=KingdomResponse)
def get_kingdom(kingdom_id: str, request: Request, now: int | None = None):
    mgr = _manager(request)
    game = _query(request, kingdom_id, now, lambda g, t: g)
    session = mgr.get_kingdom(kingdom_id)
    return _kingdom_response(session.id, session.name, game)


@router.delete("/{kingdom_id}")
def delete_kingdom(kingdom_id: str, request: Request):
    try:
        _manager(request).delete_kingdom(kingdom_id)
    except KeyError:
        raise _not_found(kingdom_id)
    return {"deleted": True}


# ----------------------------------------------------------------------
# Plot commands
# ----------------------------------------------------------------------

@router.post("/{kingdom_id}/plots/{index}/build", response_model=CommandResponse)
def build(kingdom_id: str, index: int, req: BuildRequest, request: Request):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.build_building(index, req.building, now))


@router.post("/{kingdom_id}/plots/{index}/harvest", response_model=CommandResponse)
def harvest(kingdom_id: str, index: int, request: Request, req: TimedRequest | None = None):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.harvest_building(index, now))


@router.post("/{kingdom_id}/plots/{index}/unlock", response_model=CommandResponse)
def unlock(kingdom_id: str, index: int, request: Request, req: TimedRequest | None = None):
    return _command(request, kingdom_id, req, lambda g, now: g.unlock_plot(index))


@router.post("/{kingdom_id}/plots/{index}/speed", response_model=CommandResponse)
def speed_upgrade(kingdom_id: str, index: int, request: Request,
                  req: TimedRequest | None = None):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.purchase_speed_upgrade(index))


@router.post("/{kingdom_id}/plots/{index}/output", response_model=CommandResponse)
def output_upgrade(kingdom_id: str, index: int, request: Request,
                   req: TimedRequest | None = None):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.purchase_output_upgrade(index))


@router.post("/{kingdom_id}/plots/{index}/auto-harvest", response_model=CommandResponse)
def auto_harvest(kingdom_id: str, index: int, request: Request,
                 req: TimedRequest | None = None):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.purchase_auto_harvest(index))


@router.post("/{kingdom_id}/plots/{index}/evolve", response_model=CommandResponse)
def evolve(kingdom_id: str, index: int, request: Request, req: TimedRequest | None = None):
    return _command(request, kingdom_id, req,
                    lambda g, now: g.purchase_evolution(index))


@router.post("/{kingdom_id}/plots/{index}/demolish", response_model=CommandResponse)
def demolish(kingdom_id: str, index: int, request: Request,
             req: TimedRequest | None = None):
    return _command(request, kingdom_id, req, lambda g, now: g.demolish(index))


# ----------------------------------------------------------------------
# Plot queries
# ----------------------------------------------------------------------

@router.get("/{kingdom_id}/plots/{index}")
def get_plot(kingdom_id: str, index: int, request: Request, now: int | None = None):
    plot = _query(request, kingdom_id, now, lambda g, t: g.get_plot(index))
    if plot is None:
        raise HTTPException(status_code=404, detail=f"Plot {index} does not exist")
    return plot


@router.get("/{kingdom_id}/plots/{index}/progress", response_model=ProgressResponse)
def get_progress(kingdom_id: str, index: int, request: Request, now: int | None = None):
    def _progress(game: KingdomGame, t: int) -> float:
        _check_index(game, index)
        return game.get_progress(index, t)

    return {"plot_index": index, "progress": _query(request, kingdom_id, now, _progress)}


@router.get("/{kingdom_id}/plots/{index}/buildings")
def get_buildings(kingdom_id: str, index: int, request: Request, now: int | None = None):
    def _buildings(game: KingdomGame, t: int) -> list[dict[str, Any]]:
        _check_index(game, index)
        return game.get_available_buildings(index)

    return _query(request, kingdom_id, now, _buildings)


@router.get("/{kingdom_id}/plots/{index}/upgrades")
def get_upgrades(kingdom_id: str, index: int, request: Request, now: int | None = None):
    def _upgrades(game: KingdomGame, t: int) -> list[dict[str, Any]]:
        _check_index(game, index)
        return game.get_available_upgrades(index)

    return _query(request, kingdom_id, now, _upgrades)


@router.get("/{kingdom_id}/resources")
def get_resources(kingdom_id: str, request: Request, now: int | None = None):
    return _query(request, kingdom_id, now, lambda g, t: g.get_all_resources())


# ----------------------------------------------------------------------
# Time and events
# ----------------------------------------------------------------------

@router.post("/{kingdom_id}/advance", response_model=AdvanceResponse)
def advance(kingdom_id: str, request: Request, req: TimedRequest | None = None):
    def _advance(game: KingdomGame, now: int) -> dict[str, Any]:
        # execute() has already driven the scheduler up to ``now``
        return {
            "now": game.clock,
            "resources": game.get_all_resources(),
            "is_starving": game.state.is_starving,
            "ready_plots": [
                i for i in game.state.grid.occupied_indices()
                if game.state.plots[i].harvest_ready
            ],
            "active_event": game.get_active_event(),
        }

    now = req.now if req is not None else None
    try:
        return _manager(request).execute(kingdom_id, _advance, now=now)
    except KeyError:
        raise _not_found(kingdom_id)


@router.post("/{kingdom_id}/events/accept", response_model=CommandResponse)
def accept_event(kingdom_id: str, request: Request, req: TimedRequest | None = None):
    return _command(request, kingdom_id, req, lambda g, now: g.accept_event(now))


@router.post("/{kingdom_id}/events/dismiss", response_model=CommandResponse)
def dismiss_event(kingdom_id: str, request: Request, req: TimedRequest | None = None):
    return _command(request, kingdom_id, req, lambda g, now: g.dismiss_event(now))
