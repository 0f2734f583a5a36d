from datetime import datetime, timedelta, timezone

from bingoscape.db.engine import make_engine, session_scope
from bingoscape.models import (
    Base,
    Bingo,
    ColumnBonus,
    Event,
    Goal,
    GoalGroup,
    ItemGoal,
    RowBonus,
    Team,
    TeamMember,
    TierXpRequirement,
    Tile,
    User,
)
from bingoscape.scoring.progression import PROGRESSION, STANDARD


def _grid_tiles(rows: int, columns: int, weight: int) -> list[Tile]:
    return [
        Tile(title=f"Tile {i + 1}", description="", weight=weight, index=i, tier=0)
        for i in range(rows * columns)
    ]


def main() -> None:
    """Reset the development database and fill it with a sample event."""
    engine = make_engine()

    # SQLite refuses to drop tables with live foreign keys pointing at them.
    with engine.connect() as conn:
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        if conn.dialect.name == "sqlite":
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()

    Base.metadata.create_all(engine)

    now = datetime.now(timezone.utc)

    with session_scope(engine) as session:
        alice = User(email="alice@example.com", name="Alice", runescape_name="Zezima")
        bob = User(email="bob@example.com", name="Bob", runescape_name="Lynx Titan")
        session.add_all([alice, bob])

        event = Event(
            title="Autumn Clan Bingo",
            description="Two weeks of drops.",
            start_date=now,
            end_date=now + timedelta(days=14),
        )
        red = Team(name="Red")
        blue = Team(name="Blue")
        red.members.append(TeamMember(user=alice, is_leader=True))
        blue.members.append(TeamMember(user=bob, is_leader=True))
        event.teams.extend([red, blue])

        # Standard 5x5 board with pattern bonuses
        standard = Bingo(
            title="Classic",
            rows=5,
            columns=5,
            bingo_type=STANDARD,
            main_diagonal_bonus_xp=15,
            anti_diagonal_bonus_xp=15,
            complete_board_bonus_xp=50,
            visible=True,
        )
        standard.tiles.extend(_grid_tiles(5, 5, weight=5))
        standard.row_bonuses.extend(RowBonus(row_index=r, bonus_xp=10) for r in range(5))
        standard.column_bonuses.extend(
            ColumnBonus(column_index=c, bonus_xp=10) for c in range(5)
        )

        glory = Goal(description="Obtain an Amulet of glory", target_value=1, goal_type="item")
        glory.item_goal = ItemGoal(item_id=1712, base_name="Amulet of glory", image_url="")
        standard.tiles[0].goals.append(glory)

        pets = GoalGroup(logical_operator="OR", min_required_goals=1)
        standard.tiles[1].goal_groups.append(pets)
        for description in ("Vorki", "Olmlet"):
            goal = Goal(description=description, target_value=1)
            standard.tiles[1].goals.append(goal)
            pets.goals.append(goal)

        # Progression board with three tiers
        ladder = Bingo(title="Ladder", rows=3, columns=3, bingo_type=PROGRESSION, visible=True)
        for i in range(9):
            ladder.tiles.append(
                Tile(title=f"Step {i + 1}", description="", weight=100, index=i, tier=i // 3)
            )
        ladder.tier_xp_requirements.extend(
            [
                TierXpRequirement(tier=0, xp_required=0),
                TierXpRequirement(tier=1, xp_required=200),
                TierXpRequirement(tier=2, xp_required=500),
            ]
        )

        event.bingos.extend([standard, ladder])
        session.add(event)

    print("Seeded development database")


if __name__ == "__main__":
    main()
