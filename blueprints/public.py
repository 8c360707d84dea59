"""Public-facing routes for the ladder ranking and club regulations."""

from dataclasses import dataclass

from flask import Blueprint, render_template

from models import (
    Player,
    CHALLENGE_WINDOW_DAYS,
    MAX_CHALLENGE_DISTANCE,
    NO_SHOW_PENALTY,
    ranked_players,
)

public_bp = Blueprint("public", __name__, url_prefix="/public")


@dataclass
class RankingRow:
    player: Player
    wins: int
    losses: int

    @property
    def played(self) -> int:
        return self.wins + self.losses


REGULATIONS = [
    ("1. Participation", ["The ladder is open to club members only."]),
    (
        "2. Match format",
        [
            "Matches are two sets and a super tie-break (to 10, win by 2).",
            "Advantage scoring is used.",
        ],
    ),
    (
        "3. Challenges and positions",
        [
            f"Each player may challenge opponents up to {MAX_CHALLENGE_DISTANCE} positions above them.",
            "If the challenger wins, the two players swap positions.",
            "If the challenger loses, they keep their current position.",
        ],
    ),
    (
        "4. Deadlines",
        [
            f"Once issued, a challenge must be played within {CHALLENGE_WINDOW_DAYS} calendar days.",
            f"A challenger who cannot play within that period loses {NO_SHOW_PENALTY} positions.",
            "If the challenged player cannot play within that period, the challenger wins and positions are swapped.",
            "Declining a challenge counts as a walkover: the challenger wins and positions are swapped.",
        ],
    ),
    (
        "5. Protected ranking",
        [
            "A player unable to play for justified personal reasons may request a protected ranking.",
            "The organizers review each request and only grant it for genuine causes.",
        ],
    ),
    (
        "6. Inactivity",
        [
            "Players who neither issue nor accept a challenge for 30 days are moved to the bottom of their category.",
        ],
    ),
    (
        "7. Joining the ladder",
        [
            "Players who want to join must ask one of the organizers.",
            "The organizers assign the starting position according to level, at the bottom of the matching category.",
        ],
    ),
    (
        "8. Court use",
        ["The winner leaves the court brushed and ready for the next booking."],
    ),
    (
        "9. Arranging challenges",
        [
            "Players may arrange challenges between themselves or through the organizers.",
            "The organizers may also schedule challenges between players to keep the ladder active.",
        ],
    ),
]


@public_bp.route("/ranking")
def ranking():
    rows = []
    for player in ranked_players():
        record = player.match_record()
        rows.append(RankingRow(player=player, wins=record["wins"], losses=record["losses"]))
    return render_template("public/ranking.html", rows=rows)


@public_bp.route("/regulations")
def regulations():
    return render_template("public/regulations.html", sections=REGULATIONS)
