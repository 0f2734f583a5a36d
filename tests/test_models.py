import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from bingoscape.models import (
    Base,
    Bingo,
    ColumnBonus,
    Event,
    Goal,
    GoalGroup,
    GoalValue,
    ItemGoal,
    RowBonus,
    Submission,
    Team,
    TeamGoalProgress,
    TeamMember,
    TeamTileSubmission,
    TierXpRequirement,
    Tile,
    User,
)
from bingoscape.scoring.progression import TierRequirement


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _event_with_board(self, session, rows=3, columns=3, **bingo_kwargs):
        event = Event(title="Test event")
        bingo = Bingo(title="Board", rows=rows, columns=columns, **bingo_kwargs)
        for i in range(rows * columns):
            bingo.tiles.append(Tile(title=f"T{i}", weight=10, index=i))
        event.bingos.append(bingo)
        session.add(event)
        session.flush()
        return event, bingo

    def test_user_email_is_normalized(self):
        with self.Session() as session:
            session.add(User(email="  Zezima@Example.COM ", name="Z"))
            session.commit()

            found = User.get_by_email(session, "zezima@example.com")
            self.assertIsNotNone(found)
            assert found is not None
            self.assertEqual(found.email, "zezima@example.com")
            self.assertIsNone(User.get_by_email(session, "nobody@example.com"))

    def test_find_team_for_user(self):
        with self.Session() as session:
            event, _ = self._event_with_board(session)
            other_event = Event(title="Other")
            alice = User(name="Alice")
            bob = User(name="Bob")
            red = Team(name="Red")
            red.members.append(TeamMember(user=alice))
            event.teams.append(red)
            elsewhere = Team(name="Elsewhere")
            elsewhere.members.append(TeamMember(user=bob))
            other_event.teams.append(elsewhere)
            session.add_all([other_event, bob])
            session.commit()

            self.assertEqual(Team.find_for_user(session, event.id, alice.id), red)
            self.assertIsNone(Team.find_for_user(session, event.id, bob.id))
            self.assertEqual(Team.list_for_user(session, bob.id), [elsewhere])

    def test_duplicate_membership_rejected(self):
        with self.Session() as session:
            event, _ = self._event_with_board(session)
            user = User(name="Dup")
            team = Team(name="Red")
            event.teams.append(team)
            team.members.append(TeamMember(user=user))
            team.members.append(TeamMember(user=user))
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_tile_index_unique_per_board(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session, rows=1, columns=2)
            bingo.tiles.append(Tile(title="dup", weight=1, index=0))
            with self.assertRaises(IntegrityError):
                session.flush()

    def test_board_dimensions_must_be_positive(self):
        with self.Session() as session:
            event = Event(title="Bad")
            event.bingos.append(Bingo(title="Empty", rows=0, columns=5))
            session.add(event)
            with self.assertRaises(IntegrityError):
                session.flush()

    def test_tile_row_and_column(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session, rows=2, columns=3)
            tile = bingo.tiles[4]
            self.assertEqual((tile.row, tile.column), (1, 1))

    def test_pattern_bonus_schedule_from_board(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(
                session,
                main_diagonal_bonus_xp=15,
                anti_diagonal_bonus_xp=20,
                complete_board_bonus_xp=50,
            )
            bingo.row_bonuses.append(RowBonus(row_index=0, bonus_xp=10))
            bingo.column_bonuses.append(ColumnBonus(column_index=2, bonus_xp=12))
            session.flush()

            schedule = bingo.pattern_bonus_schedule
            self.assertEqual(schedule.bonus_for_row(0), 10)
            self.assertEqual(schedule.bonus_for_row(1), 0)
            self.assertEqual(schedule.bonus_for_column(2), 12)
            self.assertEqual(schedule.total_possible_bonus_xp(3, 3), 10 + 12 + 15 + 20 + 50)

    def test_tier_requirements_default_base_tier(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session, bingo_type="progression")
            bingo.tier_xp_requirements.extend(
                [TierXpRequirement(tier=2, xp_required=50), TierXpRequirement(tier=1, xp_required=20)]
            )
            session.flush()
            self.assertEqual(
                bingo.tier_requirements,
                [
                    TierRequirement(0, 0),
                    TierRequirement(1, 20),
                    TierRequirement(2, 50),
                ],
            )

    def test_invalid_submission_status(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session)
            with self.assertRaises(ValueError):
                TeamTileSubmission(tile_id=bingo.tiles[0].id, team_id=1, status="approved")

    def test_submission_json_and_latest(self):
        with self.Session() as session:
            event, bingo = self._event_with_board(session)
            user = User(name="Alice", runescape_name="Alice")
            team = Team(name="Red")
            event.teams.append(team)
            session.add(user)
            session.flush()

            tts = TeamTileSubmission(tile_id=bingo.tiles[0].id, team_id=team.id)
            tts.submissions.append(Submission(submitted_by=user.id, image_path="a.png"))
            tts.submissions.append(Submission(submitted_by=user.id, image_path="b.png"))
            session.add(tts)
            session.commit()

            data = tts.to_json()
            self.assertEqual(data["status"], "pending")
            self.assertEqual(data["submissionCount"], 2)
            assert tts.latest_submission is not None
            self.assertEqual(tts.latest_submission.image_path, "b.png")

    def test_goal_tree_relationships(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session)
            tile = bingo.tiles[0]
            root = GoalGroup(logical_operator="AND")
            child = GoalGroup(logical_operator="OR", min_required_goals=1)
            tile.goal_groups.extend([root, child])
            root.child_groups.append(child)
            inner = Goal(description="Kill Vorkath", target_value=1)
            loose = Goal(description="Loose goal", target_value=2)
            tile.goals.extend([inner, loose])
            child.goals.append(inner)
            session.flush()

            self.assertEqual(tile.root_goal_groups, [root])
            self.assertEqual(tile.root_goals, [loose])
            self.assertEqual(child.parent_group, root)

    def test_goal_progress_lookup(self):
        with self.Session() as session:
            event, bingo = self._event_with_board(session)
            team = Team(name="Red")
            event.teams.append(team)
            goal = Goal(description="Sharks", target_value=10)
            bingo.tiles[0].goals.append(goal)
            session.flush()
            session.add(TeamGoalProgress(team_id=team.id, goal_id=goal.id, current_value=4))
            session.flush()

            self.assertEqual(TeamGoalProgress.values_for_team(session, team.id, [goal.id]), {goal.id: 4})
            self.assertEqual(TeamGoalProgress.values_for_team(session, team.id, []), {})

    def test_goal_json_includes_item_and_values(self):
        with self.Session() as session:
            _, bingo = self._event_with_board(session)
            goal = Goal(description="Glory", target_value=2, goal_type="item")
            goal.item_goal = ItemGoal(item_id=1712, base_name="Amulet of glory")
            goal.goal_values.append(GoalValue(value=1.0, description="One amulet"))
            bingo.tiles[0].goals.append(goal)
            session.flush()

            data = goal.to_json()
            self.assertEqual(data["goalType"], "item")
            self.assertEqual(data["itemGoal"]["baseName"], "Amulet of glory")
            self.assertEqual(data["goalValues"][0]["description"], "One amulet")
            self.assertEqual(bingo.to_json()["bingoType"], "standard")
            self.assertEqual(bingo.tiles[0].to_json()["tier"], 0)

    def test_event_json_uses_utc(self):
        event = Event(
            title="E",
            start_date=datetime(2024, 1, 1, 12, 0),
            end_date=datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc),
        )
        data = event.to_json()
        self.assertEqual(data["startDate"], "2024-01-01T12:00:00+00:00")
        self.assertEqual(data["endDate"], "2024-01-02T12:00:00+00:00")


if __name__ == "__main__":
    unittest.main()
