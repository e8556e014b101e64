#!/usr/bin/env python3
"""Mock FIG registry for local development.

Serves synthetic athlete, coach and judge rosters plus person pictures in the
same raw shape as the real registry, so the sync service can run offline.

Usage:
    python -m figsync.mock_registry                      # 25 athletes, seed 0
    python -m figsync.mock_registry --athletes 200 --port 8100 --malformed

Then point the service at it:
    FIGSYNC_REGISTRY_BASE_URL=http://127.0.0.1:8100/api \
    FIGSYNC_IMAGE_BASE_URL="http://127.0.0.1:8100/asset.php?id=bpic_" \
    python -m figsync.main
"""

from __future__ import annotations

import argparse
import base64
import logging
import random
from datetime import date, timedelta
from typing import Any

import uvicorn
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from figsync.eligibility import GUEST_COUNTRIES, PAN_AMERICAN_COUNTRIES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Synthetic name pools
# ---------------------------------------------------------------------------

FIRST_NAMES_MALE = [
    "Mateo", "Santiago", "Diego", "Lucas", "Gabriel", "Tomas", "Andres",
    "Felipe", "Nicolas", "Joaquin", "Ethan", "Noah",
]
FIRST_NAMES_FEMALE = [
    "Valentina", "Camila", "Sofia", "Isabella", "Lucia", "Mariana", "Daniela",
    "Gabriela", "Renata", "Paula", "Emma", "Olivia",
]
LAST_NAMES = [
    "Garcia", "Rodriguez", "Martinez", "Lopez", "Gonzalez", "Perez", "Sanchez",
    "Ramirez", "Torres", "Flores", "Rivera", "Gomez", "Diaz", "Silva", "Costa",
    "Smith", "Brown", "Tremblay",
]
COACH_LEVELS = ["L1", "L2", "L3", "L1,L2", "LHB", "LBR"]
JUDGE_CATEGORIES = ["1", "2", "3", "4"]

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA"
    "60e6kgAAAABJRU5ErkJggg=="
)


# ---------------------------------------------------------------------------
# Synthetic roster generator
# ---------------------------------------------------------------------------

class SyntheticRegistry:
    """Generates raw registry entries with stable ids for a given seed."""

    def __init__(
        self,
        athletes: int = 25,
        coaches: int = 8,
        judges: int = 8,
        seed: int = 0,
        malformed: bool = False,
        today: date | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._today = today or date.today()
        self._countries = sorted(PAN_AMERICAN_COUNTRIES) + sorted(GUEST_COUNTRIES)[:3]

        self.athletes = [self._athlete(i) for i in range(athletes)]
        self.coaches = [self._coach(i) for i in range(coaches)]
        self.judges = [self._judge(i) for i in range(judges)]

        if malformed:
            # Entries the ingestion layer must skip or drop
            for roster in (self.athletes, self.coaches, self.judges):
                roster.append("not-an-object")
                roster.append({"gymnastid": "", "id": "", "preferredlastname": "Nobody"})

    def _person(self) -> dict[str, Any]:
        gender = self._rng.choice(["male", "female"])
        pool = FIRST_NAMES_MALE if gender == "male" else FIRST_NAMES_FEMALE
        return {
            "discipline": "AER",
            "preferredfirstname": self._rng.choice(pool),
            "preferredlastname": self._rng.choice(LAST_NAMES),
            "gender": gender,
            "country": self._rng.choice(self._countries).lower(),
        }

    def _birth(self, min_age: int, max_age: int) -> str:
        year = self._today.year - self._rng.randint(min_age, max_age)
        born = date(year, 1, 1) + timedelta(days=self._rng.randint(0, 364))
        return f"{born.isoformat()} 00:00:00"

    def _athlete(self, index: int) -> dict[str, Any]:
        valid_to = self._today + timedelta(days=self._rng.randint(-90, 700))
        return {
            **self._person(),
            "gymnastid": str(10000 + index),
            "idgymnastlicense": f"AER-{20000 + index}",
            "validto": f"{valid_to.isoformat()} 00:00:00",
            "licensestatus": "Active" if valid_to > self._today else "Expired",
            "birth": self._birth(10, 30),
        }

    def _coach(self, index: int) -> dict[str, Any]:
        return {
            **self._person(),
            "id": str(30000 + index),
            "level": self._rng.choice(COACH_LEVELS),
        }

    def _judge(self, index: int) -> dict[str, Any]:
        return {
            **self._person(),
            "id": str(40000 + index),
            "birth": self._birth(25, 65),
            "category": self._rng.choice(JUDGE_CATEGORIES),
        }

    def known_ids(self) -> set[str]:
        ids: set[str] = set()
        for entry in self.athletes:
            if isinstance(entry, dict) and entry.get("gymnastid"):
                ids.add(entry["gymnastid"])
        for entry in self.coaches + self.judges:
            if isinstance(entry, dict) and entry.get("id"):
                ids.add(entry["id"])
        return ids


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_mock_app(registry: SyntheticRegistry | None = None) -> FastAPI:
    """Build the mock registry app.

    Rosters are served under ``/api/{kind}.php`` and pictures under
    ``/asset.php?id=bpic_<id>``.
    """
    registry = registry or SyntheticRegistry()
    known_ids = registry.known_ids()

    app = FastAPI(title="Mock FIG Registry")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.registry = registry
    app.state.requests = {"athletes": 0, "coaches": 0, "judges": 0, "images": 0}

    @app.get("/api/athletes.php")
    async def athletes(function: str = Query(default="")) -> JSONResponse:
        app.state.requests["athletes"] += 1
        if function != "searchLicenses":
            return JSONResponse(status_code=400, content={"error": "unknown function"})
        return JSONResponse(content=registry.athletes)

    @app.get("/api/coaches.php")
    async def coaches(function: str = Query(default="")) -> JSONResponse:
        app.state.requests["coaches"] += 1
        if function != "searchAcademic":
            return JSONResponse(status_code=400, content={"error": "unknown function"})
        return JSONResponse(content=registry.coaches)

    @app.get("/api/judges.php")
    async def judges(function: str = Query(default="")) -> JSONResponse:
        app.state.requests["judges"] += 1
        if function != "searchJudges":
            return JSONResponse(status_code=400, content={"error": "unknown function"})
        return JSONResponse(content=registry.judges)

    @app.get("/asset.php")
    async def asset(id: str = Query(default="")) -> Response:
        app.state.requests["images"] += 1
        person_id = id.removeprefix("bpic_")
        if person_id not in known_ids:
            return Response(status_code=404)
        return Response(
            content=PLACEHOLDER_PNG,
            media_type="image/png",
            headers={
                "Last-Modified": "Mon, 01 Jan 2024 00:00:00 GMT",
                "ETag": f'"bpic-{person_id}"',
            },
        )

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Mock FIG registry")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    parser.add_argument("--port", type=int, default=8100, help="Bind port")
    parser.add_argument("--athletes", type=int, default=25, help="Number of athletes")
    parser.add_argument("--coaches", type=int, default=8, help="Number of coaches")
    parser.add_argument("--judges", type=int, default=8, help="Number of judges")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--malformed",
        action="store_true",
        help="Append entries that ingestion must skip or drop",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    registry = SyntheticRegistry(
        athletes=args.athletes,
        coaches=args.coaches,
        judges=args.judges,
        seed=args.seed,
        malformed=args.malformed,
    )
    logger.info(
        "Mock FIG registry: %d athletes, %d coaches, %d judges",
        len(registry.athletes),
        len(registry.coaches),
        len(registry.judges),
    )
    uvicorn.run(create_mock_app(registry), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
