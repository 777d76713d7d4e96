"""Tests for the PhaseScheduler state machine."""

import random
from collections import Counter

import pytest

from werewolf_table.engine.effects import (
    FollowUp,
    RequestDiscussionPrompt,
    RequestNightStory,
    ScheduleFollowUp,
    StartCountdown,
    StopCountdown,
)
from werewolf_table.engine.game_state import GameState
from werewolf_table.engine.phase_scheduler import (
    LAST_WORDS_SUFFIX,
    LOG_STALEMATE,
    STORY_GAME_START,
    PhaseScheduler,
    next_night_step,
)
from werewolf_table.models import (
    DEFAULT_6_PLAYER_CONFIG,
    DEFAULT_8_PLAYER_CONFIG,
    Channel,
    GameConfig,
    HunterTrigger,
    NightStep,
    Phase,
    Player,
    Role,
    Winner,
)
from werewolf_table.protocol.actions import (
    Chat,
    HunterShoot,
    SeerCheck,
    Vote,
    WitchPoison,
    WitchSave,
    WolfKill,
)

# 6 seats: 0 wolf, 1 wolf, 2 seer, 3 villager, 4 villager, 5 hunter
SIX = [Role.WEREWOLF, Role.WEREWOLF, Role.SEER, Role.VILLAGER, Role.VILLAGER, Role.HUNTER]
# 8 seats: 0-2 wolves, 3 seer, 4 witch, 5-7 villagers
EIGHT = [
    Role.WEREWOLF, Role.WEREWOLF, Role.WEREWOLF, Role.SEER,
    Role.WITCH, Role.VILLAGER, Role.VILLAGER, Role.VILLAGER,
]


def create_revealed_state(roles: list[Role]) -> GameState:
    """A table at ROLE_REVEAL with a fixed seating."""
    config = GameConfig(total_players=len(roles), role_counts=dict(Counter(roles)))
    players = [
        Player(seat=i, name=f"Player{i}", role=role, is_host=(i == 0))
        for i, role in enumerate(roles)
    ]
    return GameState(
        config=config,
        phase=Phase.ROLE_REVEAL,
        players=players,
        story_log=[STORY_GAME_START],
    )


def effect_types(transition) -> list[type]:
    return [type(e) for e in transition.effects]


@pytest.fixture
def scheduler():
    return PhaseScheduler(action_seconds=20, rng=random.Random(7))


class TestNightOrder:
    def test_six_player_order_skips_witch(self):
        config = DEFAULT_6_PLAYER_CONFIG
        assert next_night_step(config, NightStep.WEREWOLF_ACTION) == NightStep.SEER_ACTION
        assert next_night_step(config, NightStep.SEER_ACTION) == NightStep.NONE

    def test_eight_player_order(self):
        config = DEFAULT_8_PLAYER_CONFIG
        assert next_night_step(config, NightStep.WEREWOLF_ACTION) == NightStep.SEER_ACTION
        assert next_night_step(config, NightStep.SEER_ACTION) == NightStep.WITCH_ACTION
        assert next_night_step(config, NightStep.WITCH_ACTION) == NightStep.NONE

    def test_no_seer_no_witch(self):
        config = GameConfig(total_players=6, role_counts={Role.WEREWOLF: 2, Role.VILLAGER: 4})
        assert next_night_step(config, NightStep.WEREWOLF_ACTION) == NightStep.NONE


class TestLobby:
    """Room creation and seating."""

    def test_create_room_seats_host(self, scheduler):
        state = scheduler.create_room(DEFAULT_6_PLAYER_CONFIG, "Alice", room_id="peer-host")
        assert state.phase == Phase.LOBBY
        assert state.room_id == "peer-host"
        assert len(state.players) == 1
        host = state.players[0]
        assert host.seat == 0 and host.is_host and host.role is None

    def test_join_assigns_next_seat(self, scheduler):
        state = scheduler.create_room(DEFAULT_6_PLAYER_CONFIG, "Alice")
        transition, seat = scheduler.join(state, "Bob", "peer-bob")
        assert seat == 1
        assert transition.state.phase == Phase.LOBBY
        assert transition.state.get_player(1).peer_id == "peer-bob"

    def test_last_seat_deals_roles(self, scheduler):
        state = scheduler.create_room(DEFAULT_6_PLAYER_CONFIG, "Alice")
        for i in range(1, 6):
            transition, seat = scheduler.join(state, f"Guest{i}")
            state = transition.state
            assert seat == i
        assert state.phase == Phase.ROLE_REVEAL
        assert state.story_log == [STORY_GAME_START]
        dealt = Counter(p.role for p in state.players)
        assert dealt == Counter(DEFAULT_6_PLAYER_CONFIG.role_pool())


class TestNight:
    """Night steps, resolution and the hunter's shot."""

    def test_begin_night(self, scheduler):
        transition = scheduler.begin_night(create_revealed_state(SIX))
        state = transition.state
        assert state.phase == Phase.NIGHT
        assert state.night_step == NightStep.WEREWOLF_ACTION
        assert state.round == 1
        assert state.countdown == 20
        assert effect_types(transition) == [StartCountdown]

    def test_six_player_round_one_example(self, scheduler):
        """Wolves take seat 3 in a witchless 6-seat game: dawn with one body."""
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=3)).state
        state = scheduler.confirm_step(state).state
        assert state.night_step == NightStep.SEER_ACTION

        state = scheduler.apply_action(state, 2, SeerCheck(target=0)).state
        transition = scheduler.confirm_step(state)
        state = transition.state

        assert state.phase == Phase.DAY_TRANSITION
        assert state.night_step == NightStep.NONE
        assert not state.is_alive(3)
        assert state.get_player(3).has_last_words
        assert state.last_night_dead_ids == [3]
        assert state.is_loading_story
        assert effect_types(transition) == [StopCountdown, RequestNightStory]
        request = transition.effects[1]
        assert request.dead_seats == [3]
        assert request.log_prefix == "Night 1"

    def test_expiry_without_wolf_target_is_peaceful(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        state = scheduler.confirm_step(state).state
        state = scheduler.confirm_step(state).state
        assert state.phase == Phase.DAY_TRANSITION
        assert state.last_night_dead_ids == []
        assert all(p.is_alive for p in state.players)

    def test_witch_save_empties_death_set(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(EIGHT)).state
        state = scheduler.apply_action(state, 1, WolfKill(target=6)).state
        state = scheduler.confirm_step(state).state
        state = scheduler.confirm_step(state).state
        assert state.night_step == NightStep.WITCH_ACTION

        state = scheduler.apply_action(state, 4, WitchSave(save=True)).state
        state = scheduler.confirm_step(state).state
        assert state.phase == Phase.DAY_TRANSITION
        assert state.last_night_dead_ids == []
        assert state.witch_save_used
        assert not state.witch_poison_used

    def test_witch_toggle_then_poison(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(EIGHT)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=5)).state
        state = scheduler.confirm_step(scheduler.confirm_step(state).state).state
        state = scheduler.apply_action(state, 4, WitchSave(save=True)).state
        state = scheduler.apply_action(state, 4, WitchSave(save=False)).state
        state = scheduler.apply_action(state, 4, WitchPoison(target=0)).state
        state = scheduler.confirm_step(state).state
        assert sorted(state.last_night_dead_ids) == [0, 5]
        assert not state.witch_save_used
        assert state.witch_poison_used

    def test_wolves_last_write_wins(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(EIGHT)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=5)).state
        state = scheduler.apply_action(state, 1, WolfKill(target=6)).state
        assert state.wolves_target_id == 6

    def test_night_hunter_shot(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=5)).state
        state = scheduler.confirm_step(state).state
        transition = scheduler.confirm_step(state)
        state = transition.state

        assert state.phase == Phase.NIGHT
        assert state.night_step == NightStep.HUNTER_ACTION
        assert state.hunter_trigger == HunterTrigger.NIGHT
        assert effect_types(transition) == [StartCountdown]

        state = scheduler.apply_action(state, 5, HunterShoot(target=0)).state
        transition = scheduler.confirm_step(state)
        state = transition.state
        assert state.phase == Phase.DAY_TRANSITION
        assert not state.is_alive(0)
        assert state.last_night_dead_ids == [5, 0]
        assert state.hunter_trigger is None
        assert transition.effects[1].log_prefix == "Hunter's shot"

    def test_night_hunter_victim_speaks_only_in_round_one(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=5)).state
        state = scheduler.confirm_step(scheduler.confirm_step(state).state).state
        state = scheduler.apply_action(state, 5, HunterShoot(target=0)).state

        first_night = scheduler.confirm_step(state).state
        assert first_night.get_player(0).has_last_words

        later_night = scheduler.confirm_step(state.evolve(round=2)).state
        assert not later_night.is_alive(0)
        assert not later_night.get_player(0).has_last_words

    def test_night_hunter_forfeit(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        state = scheduler.apply_action(state, 0, WolfKill(target=5)).state
        state = scheduler.confirm_step(scheduler.confirm_step(state).state).state
        transition = scheduler.confirm_step(state)
        assert transition.state.phase == Phase.DAY_TRANSITION
        assert transition.state.last_night_dead_ids == [5]
        assert transition.effects[1].log_prefix == "Night 1"

    def test_tick_counts_down_and_stops_at_zero(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state.evolve(countdown=1)
        state = scheduler.tick(state).state
        assert state.countdown == 0
        assert scheduler.tick(state).state is state

    def test_tick_ignored_by_day(self, scheduler):
        state = create_revealed_state(SIX)
        assert scheduler.tick(state).state is state


class TestDay:
    """Discussion, voting and the follow-ups after a result."""

    def _day(self, scheduler, roles=SIX) -> GameState:
        state = scheduler.begin_night(create_revealed_state(roles)).state
        while state.phase == Phase.NIGHT:
            state = scheduler.confirm_step(state).state
        return scheduler.apply_story(state, "quiet", Phase.DAY_TRANSITION, "Night 1").state

    def _voting(self, scheduler, roles=SIX) -> GameState:
        state = scheduler.begin_discussion(self._day(scheduler, roles)).state
        return scheduler.begin_voting(state).state

    def test_discussion_requests_prompt(self, scheduler):
        transition = scheduler.begin_discussion(self._day(scheduler))
        assert transition.state.phase == Phase.DAY_DISCUSSION
        assert transition.state.is_loading_story
        assert effect_types(transition) == [RequestDiscussionPrompt]

    def test_vote_overwrites(self, scheduler):
        state = self._voting(scheduler)
        state = scheduler.apply_action(state, 3, Vote(target=0)).state
        state = scheduler.apply_action(state, 3, Vote(target=1)).state
        assert state.current_votes == {3: 1}

    def test_stalemate_resumes_night_after_pause(self, scheduler):
        state = self._voting(scheduler)
        state = scheduler.apply_action(state, 3, Vote(target=0)).state
        state = scheduler.apply_action(state, 4, Vote(target=1)).state
        transition = scheduler.close_voting(state)
        state = transition.state

        assert state.phase == Phase.VOTING
        assert state.voting_closed
        assert state.story_log[-1] == LOG_STALEMATE
        assert transition.effects == [ScheduleFollowUp(follow_up=FollowUp.RESUME_NIGHT)]

        night = scheduler.apply_follow_up(state, FollowUp.RESUME_NIGHT).state
        assert night.phase == Phase.NIGHT
        assert night.round == 2
        assert night.current_votes == {}

    def test_exile_then_next_night(self, scheduler):
        state = self._voting(scheduler)
        for voter in (0, 1, 2):
            state = scheduler.apply_action(state, voter, Vote(target=3)).state
        transition = scheduler.close_voting(state)
        state = transition.state
        exiled = state.get_player(3)
        assert not exiled.is_alive
        assert exiled.has_last_words
        assert state.story_log[-1] == "Player3 was exiled."
        assert transition.effects == [ScheduleFollowUp(follow_up=FollowUp.FINISH_EXILE)]

        state = scheduler.apply_follow_up(state, FollowUp.FINISH_EXILE).state
        assert state.phase == Phase.NIGHT
        assert state.round == 2

    def test_exile_ends_game(self, scheduler):
        state = self._voting(scheduler)
        state = state.evolve(players=state.kill([0]))
        state = scheduler.apply_action(state, 2, Vote(target=1)).state
        state = scheduler.close_voting(state).state
        transition = scheduler.apply_follow_up(state, FollowUp.FINISH_EXILE)
        assert transition.state.phase == Phase.GAME_OVER
        assert transition.state.winner == Winner.VILLAGERS
        assert effect_types(transition) == [StopCountdown]

    def test_exiled_hunter_shoots_then_victory_check(self, scheduler):
        state = self._voting(scheduler)
        for voter in (0, 1):
            state = scheduler.apply_action(state, voter, Vote(target=5)).state
        transition = scheduler.close_voting(state)
        state = transition.state
        assert state.phase == Phase.NIGHT
        assert state.night_step == NightStep.HUNTER_ACTION
        assert state.hunter_trigger == HunterTrigger.EXILE
        assert effect_types(transition) == [StartCountdown]

        state = scheduler.apply_action(state, 5, HunterShoot(target=0)).state
        state = scheduler.confirm_step(state).state
        assert not state.is_alive(0)
        assert state.story_log[-1] == "The hunter took Player0 down with them."
        assert state.phase == Phase.NIGHT
        assert state.night_step == NightStep.WEREWOLF_ACTION
        assert state.round == 2

    def test_exile_hunter_shot_is_not_a_night_death(self, scheduler):
        state = self._voting(scheduler)
        assert state.last_night_dead_ids == []
        for voter in (0, 1):
            state = scheduler.apply_action(state, voter, Vote(target=5)).state
        state = scheduler.close_voting(state).state
        state = scheduler.apply_action(state, 5, HunterShoot(target=0)).state
        state = scheduler.confirm_step(state).state
        assert not state.is_alive(0)
        assert state.last_night_dead_ids == []

    def test_stale_follow_up_is_ignored(self, scheduler):
        state = self._day(scheduler)
        assert scheduler.apply_follow_up(state, FollowUp.RESUME_NIGHT).state is state

    def test_last_words_consumed_once(self, scheduler):
        state = self._voting(scheduler)
        for voter in (0, 1, 2):
            state = scheduler.apply_action(state, voter, Vote(target=3)).state
        state = scheduler.close_voting(state).state
        state = scheduler.apply_action(state, 3, Chat(text="I was innocent")).state
        message = state.public_chat_history[-1]
        assert message.sender_name == "Player3" + LAST_WORDS_SUFFIX
        assert not state.get_player(3).has_last_words

    def test_wolf_chat_goes_to_wolf_history(self, scheduler):
        state = self._day(scheduler)
        state = scheduler.apply_action(state, 0, Chat(text=" #2 ", channel=Channel.WOLF)).state
        assert state.public_chat_history == []
        assert state.wolf_chat_history[-1].text == "#2"


class TestStory:
    def test_story_in_same_phase_replaces_panel(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        while state.phase == Phase.NIGHT:
            state = scheduler.confirm_step(state).state
        state = scheduler.apply_story(state, "A quiet night.", Phase.DAY_TRANSITION, "Night 1").state
        assert state.current_story == "A quiet night."
        assert state.story_log[-1] == "Night 1: A quiet night."
        assert not state.is_loading_story

    def test_late_story_only_logged(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        while state.phase == Phase.NIGHT:
            state = scheduler.confirm_step(state).state
        night_request = state.story_request
        state = scheduler.begin_discussion(state).state
        before = state.current_story
        state = scheduler.apply_story(
            state, "Late text.", Phase.DAY_TRANSITION, "Night 1", request_id=night_request,
        ).state
        assert state.current_story == before
        assert state.story_log[-1] == "Night 1: Late text."
        assert state.is_loading_story

    def test_only_newest_request_clears_loading(self, scheduler):
        state = scheduler.begin_night(create_revealed_state(SIX)).state
        while state.phase == Phase.NIGHT:
            state = scheduler.confirm_step(state).state
        night_request = state.story_request
        transition = scheduler.begin_discussion(state)
        prompt_request = transition.effects[0].request_id
        assert prompt_request == night_request + 1

        state = scheduler.apply_story(
            transition.state, "Speak up.", Phase.DAY_DISCUSSION, request_id=prompt_request,
        ).state
        assert state.current_story == "Speak up."
        assert not state.is_loading_story

        state = scheduler.apply_story(
            state, "Late text.", Phase.DAY_TRANSITION, "Night 1", request_id=night_request,
        ).state
        assert state.current_story == "Speak up."
        assert state.story_log[-1] == "Night 1: Late text."
        assert not state.is_loading_story
