#!/usr/bin/env python3
"""
Knowledge Chatbot - fuzzy question/answer matching demo
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

# Setup logger
logger = logging.getLogger(__name__)

from src.chat.assistant import ChatAssistant
from src.chat.models import ChatMessage
from src.kb.knowledge_base import KnowledgeBase
from src.kb.models import Feedback


def load_config(config_path: str = "config/config.yaml") -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        return config
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"❌ Error parsing configuration file: {e}")
        sys.exit(1)


def setup_logging(config: dict):
    """Setup logging configuration."""
    log_config = config.get("logging", {})
    log_level = getattr(logging, log_config.get("level", "INFO"))
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Create logs directory if it doesn't exist
    log_file = log_config.get("file", "logs/knowledge_chatbot.log")
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class KnowledgeChatbot:
    """Main chatbot class wiring the knowledge base to the chat assistant."""

    def __init__(self, config: dict, state_file: Optional[str] = None):
        self.config = config
        self.console = Console()
        self.state_file = Path(state_file) if state_file else None

        self.kb = KnowledgeBase(config.get("kb", {}))
        if self.state_file and self.state_file.exists():
            if not self.kb.import_knowledge(self.state_file.read_text()):
                raise click.ClickException(f"Invalid knowledge state file: {self.state_file}")
            logger.info(f"Loaded knowledge state from {self.state_file}")

        self.assistant = ChatAssistant(config.get("chat", {}), self.kb)
        self.debug_mode = config.get("debug", {}).get("enabled", False)

    def save_state(self):
        """Write the knowledge base back to the state file, if one is configured."""
        if self.state_file:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(self.kb.export_knowledge())
            logger.info(f"Saved knowledge state to {self.state_file}")

    def display_reply(self, reply: ChatMessage, debug: bool = False):
        """Display an assistant reply in a formatted way."""
        title = "[bold blue]Knowledge Base[/bold blue]" if reply.type == "knowledge" else "[bold blue]Assistant[/bold blue]"
        self.console.print(Panel(reply.content, title=title, border_style="blue"))

        match = reply.knowledge_match
        if match and (debug or self.debug_mode):
            match_table = Table(title="Knowledge Match")
            match_table.add_column("Property", style="cyan")
            match_table.add_column("Value", style="white")

            match_table.add_row("Type", match.match_type.value)
            match_table.add_row("Score", f"{round(match.score)}%")
            match_table.add_row("Confidence", f"{match.confidence:.2f}")
            match_table.add_row("Category", match.pair.category)
            match_table.add_row("Used", str(match.pair.use_count))
            match_table.add_row("Question", match.pair.question)

            self.console.print(match_table)

        for choice in reply.choices:
            self.console.print(f"  • {choice.text} [dim]({choice.confidence}%)[/dim]")

    def show_stats(self):
        """Display knowledge base statistics."""
        stats = self.kb.get_stats()

        kb_table = Table(title="Knowledge Base Statistics")
        kb_table.add_column("Metric", style="cyan")
        kb_table.add_column("Value", style="white")

        kb_table.add_row("Total Pairs", str(stats.total_pairs))
        kb_table.add_row("Categories", str(len(stats.categories)))
        kb_table.add_row("Average Score", f"{stats.average_score:.2f}")
        kb_table.add_row("Confidence Threshold", f"{self.kb.confidence_threshold:.3f}")
        kb_table.add_row("Fuzzy Threshold", str(self.kb.fuzzy_threshold))
        kb_table.add_row("Feedback Records", str(len(self.kb.learning_data)))
        kb_table.add_row("Last Update", stats.last_update.isoformat(timespec="seconds"))

        category_table = Table(title="Pairs per Category")
        category_table.add_column("Category", style="cyan")
        category_table.add_column("Pairs", style="white")
        for category in sorted(stats.categories):
            category_table.add_row(category, str(stats.categories[category]))

        used_table = Table(title="Most Used")
        used_table.add_column("Question", style="cyan")
        used_table.add_column("Uses", style="white")
        for pair in stats.most_used:
            used_table.add_row(pair.question, str(pair.use_count))

        self.console.print(kb_table)
        self.console.print(category_table)
        self.console.print(used_table)

    def show_pairs(self, pairs, title: str):
        table = Table(title=title)
        table.add_column("ID", style="dim")
        table.add_column("Question", style="cyan")
        table.add_column("Answer", style="white")
        table.add_column("Category", style="magenta")
        for pair in pairs:
            table.add_row(pair.id, pair.question, pair.answer, pair.category)
        self.console.print(table)

    async def interactive_mode(self):
        """Run the chatbot in interactive mode."""
        self.console.print(Panel(
            "[bold blue]Knowledge Chatbot[/bold blue]\n"
            f"{self.kb.get_stats().total_pairs} trained responses loaded.\n"
            "Type 'quit' to exit, 'stats' for statistics, 'help' for commands.",
            border_style="blue"
        ))

        while True:
            try:
                message = click.prompt("\nYou", default="", show_default=False)

                if message.lower() in ['quit', 'exit', 'q']:
                    break
                elif message.lower() == 'stats':
                    self.show_stats()
                    continue
                elif message.lower() == 'help':
                    self.console.print("""
                    [bold]Available Commands:[/bold]
                    • Ask anything; /search and /calc select a handler
                    • '+' / '-' - Rate the last knowledge answer
                    • 'stats' - Show knowledge base statistics
                    • 'help' - Show this help message
                    • 'quit' - Exit
                    """)
                    continue
                elif message.strip() in ['+', '-']:
                    reply = self.assistant.last_reply()
                    feedback = Feedback.POSITIVE if message.strip() == '+' else Feedback.NEGATIVE
                    acknowledgement = self.assistant.give_feedback(reply, feedback) if reply else None
                    self.console.print(acknowledgement or "[yellow]Nothing to rate.[/yellow]")
                    continue
                elif not message.strip():
                    continue

                reply = await self.assistant.respond(message)
                self.display_reply(reply)

            except (KeyboardInterrupt, EOFError, click.Abort):
                self.console.print("\n[yellow]Exiting...[/yellow]")
                break
            except Exception as e:
                self.console.print(f"[red]Error: {e}[/red]")

        self.save_state()


@click.group()
@click.option('--config', '-c', default='config/config.yaml', help='Configuration file path')
@click.option('--state', '-s', default=None, help='Knowledge export file to load and save')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, state, debug):
    """Knowledge Chatbot CLI."""
    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)
    ctx.obj['state'] = state
    ctx.obj['debug'] = debug

    # Setup logging
    setup_logging(ctx.obj['config'])

    # Enable debug mode in config
    if debug:
        ctx.obj['config'].setdefault('debug', {})['enabled'] = True


def _chatbot(ctx) -> KnowledgeChatbot:
    return KnowledgeChatbot(ctx.obj['config'], ctx.obj['state'])


@cli.command()
@click.argument('message')
@click.pass_context
def ask(ctx, message):
    """Ask the chatbot a single question."""
    chatbot = _chatbot(ctx)

    reply = asyncio.run(chatbot.assistant.respond(message))
    if reply is None:
        chatbot.console.print("[yellow]Nothing to answer.[/yellow]")
        return

    chatbot.display_reply(reply, debug=ctx.obj['debug'])
    chatbot.save_state()


@cli.command()
@click.pass_context
def interactive(ctx):
    """Start interactive chat mode."""
    chatbot = _chatbot(ctx)
    asyncio.run(chatbot.interactive_mode())


@cli.command()
@click.pass_context
def stats(ctx):
    """Show knowledge base statistics."""
    _chatbot(ctx).show_stats()


@cli.command()
@click.argument('query')
@click.pass_context
def search(ctx, query):
    """Search questions, answers, keywords and categories."""
    chatbot = _chatbot(ctx)
    results = chatbot.kb.search_knowledge(query)
    if not results:
        chatbot.console.print(f"[yellow]No pairs match '{query}'[/yellow]")
        return
    chatbot.show_pairs(results, f"Search results for '{query}'")


@cli.command()
@click.option('--category', default=None, help='List the pairs of one category')
@click.pass_context
def categories(ctx, category):
    """List categories, or the pairs of one category."""
    chatbot = _chatbot(ctx)
    if category:
        chatbot.show_pairs(chatbot.kb.get_knowledge_by_category(category), f"Category '{category}'")
        return
    for name in chatbot.kb.get_all_categories():
        chatbot.console.print(f"  • {name}")


@cli.command()
@click.argument('question')
@click.argument('answer')
@click.option('--category', default='general', help='Category of the pair')
@click.option('--keyword', '-k', multiple=True, help='Keyword for the question (repeatable)')
@click.pass_context
def add(ctx, question, answer, category, keyword):
    """Add a question/answer pair."""
    chatbot = _chatbot(ctx)
    pair_id = chatbot.kb.add_knowledge_pair(question, answer, list(keyword) or None, category)
    chatbot.save_state()
    chatbot.console.print(f"[green]✅ Added pair {pair_id}[/green]")


@cli.command()
@click.argument('pair_id')
@click.pass_context
def remove(ctx, pair_id):
    """Remove a pair by id."""
    chatbot = _chatbot(ctx)
    if not chatbot.kb.remove_knowledge_pair(pair_id):
        chatbot.console.print(f"[yellow]Pair {pair_id} not found[/yellow]")
        return
    chatbot.save_state()
    chatbot.console.print(f"[green]✅ Removed pair {pair_id}[/green]")


@cli.command(name='export')
@click.argument('file_path')
@click.pass_context
def export_command(ctx, file_path):
    """Export the knowledge base to a JSON file."""
    chatbot = _chatbot(ctx)
    try:
        Path(file_path).write_text(chatbot.kb.export_knowledge())
        chatbot.console.print(f"[green]✅ Exported {len(chatbot.kb.get_all_knowledge())} pairs to {file_path}[/green]")
    except Exception as e:
        chatbot.console.print(f"[red]❌ Failed to export knowledge base: {e}[/red]")


@cli.command(name='import')
@click.argument('file_path', type=click.Path(exists=True))
@click.pass_context
def import_command(ctx, file_path):
    """Import a knowledge base export, replacing the current pairs."""
    chatbot = _chatbot(ctx)
    if not chatbot.kb.import_knowledge(Path(file_path).read_text()):
        chatbot.console.print(f"[red]❌ Failed to import {file_path}[/red]")
        ctx.exit(1)
    chatbot.save_state()
    chatbot.console.print(f"[green]✅ Imported {len(chatbot.kb.get_all_knowledge())} pairs[/green]")


@cli.command()
@click.pass_context
def maintain(ctx):
    """Remove stale pairs and re-tune the confidence threshold from feedback."""
    chatbot = _chatbot(ctx)
    before = len(chatbot.kb.get_all_knowledge())
    chatbot.kb.update_knowledge_base()
    chatbot.save_state()

    removed = before - len(chatbot.kb.get_all_knowledge())
    chatbot.console.print(f"[blue]Removed {removed} stale pairs[/blue]")
    chatbot.console.print(f"  • Confidence threshold: {chatbot.kb.confidence_threshold:.3f}")
    chatbot.console.print(f"  • Fuzzy threshold: {chatbot.kb.fuzzy_threshold}")


@cli.command(name='export-chat')
@click.argument('message', nargs=-1, required=True)
@click.option('--output', '-o', default='-', help='Output file, - for stdout')
@click.pass_context
def export_chat(ctx, message, output):
    """Answer each MESSAGE in turn and export the transcript with statistics."""
    chatbot = _chatbot(ctx)

    async def run_chat():
        for text in message:
            await chatbot.assistant.respond(text)

    asyncio.run(run_chat())
    transcript = json.dumps(chatbot.assistant.export_conversation(), indent=2)
    if output == '-':
        click.echo(transcript)
    else:
        Path(output).write_text(transcript)
        chatbot.console.print(f"[green]✅ Conversation exported to {output}[/green]")
    chatbot.save_state()


if __name__ == "__main__":
    cli()
