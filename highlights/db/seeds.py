"""
Team Seed Data

The 30 NBA franchises, keyed by the schedule API's team ids.
"""

from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.logging import get_logger
from . import session_scope
from .repositories import TeamRepository

logger = get_logger(__name__)


NBA_TEAMS: List[Dict] = [
    # Eastern Conference - Atlantic Division
    {"name": "Celtics", "full_name": "Boston Celtics", "abbreviation": "BOS", "conference": "Eastern", "division": "Atlantic", "external_id": 2},
    {"name": "Nets", "full_name": "Brooklyn Nets", "abbreviation": "BKN", "conference": "Eastern", "division": "Atlantic", "external_id": 3},
    {"name": "Knicks", "full_name": "New York Knicks", "abbreviation": "NYK", "conference": "Eastern", "division": "Atlantic", "external_id": 20},
    {"name": "76ers", "full_name": "Philadelphia 76ers", "abbreviation": "PHI", "conference": "Eastern", "division": "Atlantic", "external_id": 23},
    {"name": "Raptors", "full_name": "Toronto Raptors", "abbreviation": "TOR", "conference": "Eastern", "division": "Atlantic", "external_id": 28},

    # Eastern Conference - Central Division
    {"name": "Bulls", "full_name": "Chicago Bulls", "abbreviation": "CHI", "conference": "Eastern", "division": "Central", "external_id": 5},
    {"name": "Cavaliers", "full_name": "Cleveland Cavaliers", "abbreviation": "CLE", "conference": "Eastern", "division": "Central", "external_id": 6},
    {"name": "Pistons", "full_name": "Detroit Pistons", "abbreviation": "DET", "conference": "Eastern", "division": "Central", "external_id": 9},
    {"name": "Pacers", "full_name": "Indiana Pacers", "abbreviation": "IND", "conference": "Eastern", "division": "Central", "external_id": 12},
    {"name": "Bucks", "full_name": "Milwaukee Bucks", "abbreviation": "MIL", "conference": "Eastern", "division": "Central", "external_id": 17},

    # Eastern Conference - Southeast Division
    {"name": "Hawks", "full_name": "Atlanta Hawks", "abbreviation": "ATL", "conference": "Eastern", "division": "Southeast", "external_id": 1},
    {"name": "Hornets", "full_name": "Charlotte Hornets", "abbreviation": "CHA", "conference": "Eastern", "division": "Southeast", "external_id": 4},
    {"name": "Heat", "full_name": "Miami Heat", "abbreviation": "MIA", "conference": "Eastern", "division": "Southeast", "external_id": 16},
    {"name": "Magic", "full_name": "Orlando Magic", "abbreviation": "ORL", "conference": "Eastern", "division": "Southeast", "external_id": 22},
    {"name": "Wizards", "full_name": "Washington Wizards", "abbreviation": "WAS", "conference": "Eastern", "division": "Southeast", "external_id": 30},

    # Western Conference - Northwest Division
    {"name": "Nuggets", "full_name": "Denver Nuggets", "abbreviation": "DEN", "conference": "Western", "division": "Northwest", "external_id": 8},
    {"name": "Timberwolves", "full_name": "Minnesota Timberwolves", "abbreviation": "MIN", "conference": "Western", "division": "Northwest", "external_id": 18},
    {"name": "Thunder", "full_name": "Oklahoma City Thunder", "abbreviation": "OKC", "conference": "Western", "division": "Northwest", "external_id": 21},
    {"name": "Trail Blazers", "full_name": "Portland Trail Blazers", "abbreviation": "POR", "conference": "Western", "division": "Northwest", "external_id": 25},
    {"name": "Jazz", "full_name": "Utah Jazz", "abbreviation": "UTA", "conference": "Western", "division": "Northwest", "external_id": 29},

    # Western Conference - Pacific Division
    {"name": "Warriors", "full_name": "Golden State Warriors", "abbreviation": "GSW", "conference": "Western", "division": "Pacific", "external_id": 10},
    {"name": "Clippers", "full_name": "LA Clippers", "abbreviation": "LAC", "conference": "Western", "division": "Pacific", "external_id": 13},
    {"name": "Lakers", "full_name": "Los Angeles Lakers", "abbreviation": "LAL", "conference": "Western", "division": "Pacific", "external_id": 14},
    {"name": "Suns", "full_name": "Phoenix Suns", "abbreviation": "PHX", "conference": "Western", "division": "Pacific", "external_id": 24},
    {"name": "Kings", "full_name": "Sacramento Kings", "abbreviation": "SAC", "conference": "Western", "division": "Pacific", "external_id": 26},

    # Western Conference - Southwest Division
    {"name": "Mavericks", "full_name": "Dallas Mavericks", "abbreviation": "DAL", "conference": "Western", "division": "Southwest", "external_id": 7},
    {"name": "Rockets", "full_name": "Houston Rockets", "abbreviation": "HOU", "conference": "Western", "division": "Southwest", "external_id": 11},
    {"name": "Grizzlies", "full_name": "Memphis Grizzlies", "abbreviation": "MEM", "conference": "Western", "division": "Southwest", "external_id": 15},
    {"name": "Pelicans", "full_name": "New Orleans Pelicans", "abbreviation": "NOP", "conference": "Western", "division": "Southwest", "external_id": 19},
    {"name": "Spurs", "full_name": "San Antonio Spurs", "abbreviation": "SAS", "conference": "Western", "division": "Southwest", "external_id": 27},
]


async def seed_teams(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> Dict[str, int]:
    """
    Insert missing teams and refresh existing ones (matched by abbreviation).

    Returns counts of created and updated rows. Safe to re-run.
    """
    created = updated = 0

    async with session_scope(session_factory) as session:
        repo = TeamRepository(session)
        for seed in NBA_TEAMS:
            team = await repo.find_by_abbreviation(seed["abbreviation"])
            if team is None:
                await repo.create(**seed)
                created += 1
                continue

            for field in ("name", "full_name", "conference", "division"):
                setattr(team, field, seed[field])
            if team.external_id != seed["external_id"]:
                await repo.set_external_id(team, seed["external_id"])
            updated += 1

    logger.info("teams_seeded", created=created, updated=updated)
    return {"created": created, "updated": updated}
