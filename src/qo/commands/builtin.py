"""
The terminal's command table.

AI-backed commands (ask, explain, quiz, derive, papers) are coroutines that
forward to the session's AI client; the rest are synchronous and only touch
session or UI state.
"""

from qo.commands import CommandRegistry, CommandResult

ASK_CONTEXT = "Provide detailed technical answer."
EXPLAIN_CONTEXT = "Include mathematical formalism and practical applications."
QUIZ_CONTEXT = "Format with letters (A-D). Include answers at the end."
DERIVE_CONTEXT = "Use proper mathematical notation with numbered steps."
DEFAULT_QUIZ_TOPIC = "random quantum optics topic"
DEFAULT_PAPER_QUERY = "quantum optics"


def format_help(registry: CommandRegistry) -> str:
    """Command list with descriptions aligned to the longest name + 2."""
    commands = registry.list_commands()
    width = max(len(c.name) for c in commands) + 2
    lines = [f"  {c.name.ljust(width)}{c.description}" for c in commands]
    return "Available commands:\n" + "\n".join(lines)


def build_registry() -> CommandRegistry:
    """Build and freeze the command table."""
    registry = CommandRegistry()

    @registry.register("help", "Show available commands")
    def help_cmd(args, session):
        return format_help(registry)

    @registry.register("ask", "Ask anything about quantum optics")
    async def ask_cmd(args, session):
        if not args:
            return "Please enter your question"
        return await session.get_ai().query(" ".join(args), ASK_CONTEXT)

    @registry.register("explain", "Explain a quantum optics concept")
    async def explain_cmd(args, session):
        if not args:
            return "Please specify a concept"
        return await session.get_ai().query(
            f"Explain {' '.join(args)} in quantum optics", EXPLAIN_CONTEXT,
        )

    @registry.register("quiz", "Generate interactive quiz")
    async def quiz_cmd(args, session):
        topic = " ".join(args) or DEFAULT_QUIZ_TOPIC
        return await session.get_ai().query(
            f"Create 3 multiple choice questions about {topic}", QUIZ_CONTEXT,
        )

    @registry.register("derive", "Derive a quantum optics formula")
    async def derive_cmd(args, session):
        if not args:
            return "Please specify a formula/effect"
        return await session.get_ai().query(
            f"Derive {' '.join(args)} step-by-step", DERIVE_CONTEXT,
        )

    @registry.register("papers", "Find and summarize recent papers")
    async def papers_cmd(args, session):
        query = " ".join(args) or DEFAULT_PAPER_QUERY
        return await session.get_papers().summarize_papers(query)

    @registry.register("clear", "Clear terminal history")
    def clear_cmd(args, session):
        return CommandResult(clear=True)

    @registry.register("login", "Authenticate user session")
    def login_cmd(args, session):
        return CommandResult(text="Please use the login form", modal="login")

    @registry.register("logout", "End current session")
    def logout_cmd(args, session):
        session.logout()
        return "Logged out successfully"

    @registry.register("register", "Create new account")
    def register_cmd(args, session):
        return CommandResult(text="Please use the registration form", modal="register")

    @registry.register("theme", "Change interface color theme")
    def theme_cmd(args, session):
        color = session.set_theme(args[0] if args else None)
        return f"Theme set to {color}"

    return registry.freeze()
