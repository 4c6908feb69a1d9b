"""CLI for solving Yahtzee and querying the optimal strategy.

Commands:
    yahtzee-solver solve        Solve the game and save the state value table
    yahtzee-solver score        Print the expected score stored in a table
    yahtzee-solver advise       Best action for one position
    yahtzee-solver interactive  Turn-by-turn advice for a live game
"""

from __future__ import annotations

import click

from .config import DEFAULT_CHUNK_SIZE, DEFAULT_WORKERS, JokerRule

JOKER_RULES = [r.name.lower().replace("_", "-") for r in JokerRule]
YAHTZEE_STATUSES = ["unscored", "scored", "scratched"]


def _joker_rule(name: str) -> JokerRule:
    return JokerRule[name.upper().replace("-", "_")]


def _parse_dice(text: str) -> tuple[int, ...]:
    try:
        faces = tuple(int(t) for t in text.replace(",", " ").split())
    except ValueError:
        raise click.BadParameter(f"dice must be integers, got {text!r}") from None
    if len(faces) != 5 or any(not 1 <= f <= 6 for f in faces):
        raise click.BadParameter(f"need five dice with faces 1..6, got {text!r}")
    return faces


def _table_path(table: str | None, base_path: str, joker_rule: str):
    from .config import default_table_path

    return table or default_table_path(base_path, _joker_rule(joker_rule))


def _load_advisor(path):
    from .query import Advisor
    from .tables import load_value_table

    try:
        return Advisor(load_value_table(path))
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Cannot load state values: {e}", err=True)
        raise SystemExit(1)


def _describe(action, dice) -> str:
    from .query import Reroll

    if isinstance(action, Reroll):
        kept = action.kept(dice)
        return f"Reroll, keeping {list(kept)}" if kept else "Reroll all five dice"
    return f"Score {action.category.label}"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """Optimal solitaire Yahtzee by backward induction over scorecard states."""
    from .logger import configure_logging

    configure_logging(verbose)


@cli.command("solve")
@click.option("--joker-rule", type=click.Choice(JOKER_RULES), default="forced", show_default=True)
@click.option("--workers", default=DEFAULT_WORKERS, type=int, show_default=True)
@click.option("--chunk-size", default=DEFAULT_CHUNK_SIZE, type=int, show_default=True)
@click.option("--base-path", default=".", help="Directory holding data/")
@click.option("--output", default=None, help="Output file (default: data/state_values_<rule>.bin)")
def solve(joker_rule: str, workers: int, chunk_size: int, base_path: str, output: str | None) -> None:
    """Solve the game and save one expected value per scorecard state."""
    from .config import SolverConfig
    from .solver import Solver
    from .tables import save_value_table

    try:
        config = SolverConfig(joker_rule=_joker_rule(joker_rule), workers=workers, chunk_size=chunk_size)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    table = Solver(config).solve()
    path = save_value_table(table, _table_path(output, base_path, joker_rule))
    click.echo(f"Expected score: {table.expected_score:.4f}")
    click.echo(f"Saved to {path}")


@cli.command("score")
@click.option("--table", default=None, help="State value file")
@click.option("--base-path", default=".", help="Directory holding data/")
@click.option("--joker-rule", type=click.Choice(JOKER_RULES), default="forced", show_default=True)
def score(table: str | None, base_path: str, joker_rule: str) -> None:
    """Print the optimal expected score stored in a table."""
    advisor = _load_advisor(_table_path(table, base_path, joker_rule))
    click.echo(f"Joker rule:     {advisor.table.joker_rule.name.lower()}")
    click.echo(f"Expected score: {advisor.solve():.4f}")


@cli.command("advise")
@click.option("--dice", "dice_text", required=True, help="Five dice, e.g. 1,3,3,4,6")
@click.option("--rolls-left", default=2, type=click.IntRange(0, 2), show_default=True)
@click.option("--filled", default="", help="Comma-separated filled categories, e.g. aces,chance")
@click.option("--upper", default=0, type=int, help="Upper section total so far")
@click.option("--yahtzee", default="unscored", type=click.Choice(YAHTZEE_STATUSES), show_default=True)
@click.option("--table", default=None, help="State value file")
@click.option("--base-path", default=".", help="Directory holding data/")
@click.option("--joker-rule", type=click.Choice(JOKER_RULES), default="forced", show_default=True)
@click.option("--all", "show_all", is_flag=True, help="List the value of every legal action")
def advise(
    dice_text: str,
    rolls_left: int,
    filled: str,
    upper: int,
    yahtzee: str,
    table: str | None,
    base_path: str,
    joker_rule: str,
    show_all: bool,
) -> None:
    """Best action for one scorecard and hand."""
    from .errors import InvalidState
    from .scoring import parse_category
    from .states import DiceState, ScorecardState, YahtzeeStatus

    try:
        categories = [parse_category(name) for name in filled.split(",") if name.strip()]
        scorecard = ScorecardState.from_filled(categories, upper, YahtzeeStatus[yahtzee.upper()])
        dice = DiceState.from_faces(_parse_dice(dice_text), rolls_left)
    except (InvalidState, ValueError, click.BadParameter) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    advisor = _load_advisor(_table_path(table, base_path, joker_rule))
    try:
        action = advisor.best_action(scorecard, dice)
        values = advisor.action_values(scorecard, dice) if show_all else None
    except InvalidState as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(_describe(action, dice))
    if values:
        for a, v in sorted(values.items(), key=lambda kv: -kv[1]):
            click.echo(f"  {v:9.3f}  {_describe(a, dice)}")


@cli.command("interactive")
@click.option("--table", default=None, help="State value file")
@click.option("--base-path", default=".", help="Directory holding data/")
@click.option("--joker-rule", type=click.Choice(JOKER_RULES), default="forced", show_default=True)
def interactive(table: str | None, base_path: str, joker_rule: str) -> None:
    """Play a game with your own dice; the solver advises every decision."""
    from .errors import InvalidState
    from .query import Reroll, ScoreCategory
    from .scoring import parse_category
    from .states import DiceState, ScorecardState

    advisor = _load_advisor(_table_path(table, base_path, joker_rule))
    scorecard = ScorecardState.empty()
    total = 0
    click.echo(f"Expected score from here: {advisor.solve():.2f}")

    while not scorecard.is_terminal:
        click.echo(f"\nTurn {scorecard.fill_level + 1}, score so far {total}")
        for rolls_left in (2, 1, 0):
            dice = DiceState.from_faces(click.prompt("Dice", value_proc=_parse_dice), rolls_left)
            action = advisor.best_action(scorecard, dice)
            click.echo(f"  -> {_describe(action, dice)}")
            if not isinstance(action, Reroll):
                break

        suggested = action.category if isinstance(action, ScoreCategory) else None
        while True:
            choice = click.prompt(
                "Category", default=suggested.name.lower() if suggested is not None else None
            )
            try:
                points, scorecard = advisor.apply_score(scorecard, dice, parse_category(choice))
            except (InvalidState, ValueError) as e:
                click.echo(f"  {e}")
                continue
            break
        total += points
        click.echo(f"  +{points} points")

    click.echo(f"\nFinal score: {total}")


if __name__ == "__main__":
    cli()
