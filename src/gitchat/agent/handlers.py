"""Operation handlers for the eight git operation kinds.

Every handler shares one signature, ``async (HandlerContext) -> WorkflowResult``,
and honours the three execution modes:
- execute: call the repository collaborator
- suggest: return static instructions, with zero repository calls
- ask: run read-only actions directly, return a confirmation descriptor for
  anything that would change repository state

Handlers are looked up through the flat ``HANDLERS`` table. Any exception
raised inside a handler becomes an ``Error during <step>: <message>`` result.
"""

from __future__ import annotations

import asyncio
import functools
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional, TypeVar

from gitchat.agent.models import (
    CONFIRMATION_MARKER,
    ConfirmationDescriptor,
    ExecutionMode,
    OperationKind,
    WorkflowResult,
    WorkflowType,
)
from gitchat.agent.sub_parsers import SUB_PARSERS, ParsedAction
from gitchat.errors import GitCommandError
from gitchat.git.code_review import CodeReviewer
from gitchat.git.commit_message import CommitMessageGenerator
from gitchat.git.diff_analyzer import DiffAnalyzer
from gitchat.git.repository import GitRepository, RepositoryStatus
from gitchat.llm.providers import ModelClient
from gitchat.utils.logging import get_logger

if TYPE_CHECKING:
    from gitchat.agent.streaming import ProgressReporter

logger = get_logger("agent.handlers")

T = TypeVar("T")

CONFIRM_ACTIONS = ["Confirm operation", "Get instructions", "Cancel"]
SUGGEST_ACTIONS = ["Execute operation", "Learn more", "Cancel"]

STATUS_ICONS = {
    "A": "🆕",
    "M": "✏️",
    "D": "🗑️",
    "R": "📝",
    "C": "📋",
    "?": "❓",
}

_DIFF_PATH = re.compile(r"\b(?:for|of|in|on)\s+([\w./-]+\.\w+)\b")


@dataclass
class HandlerContext:
    """Everything a handler needs for one request."""
    text: str
    mode: ExecutionMode
    repository: GitRepository
    model: Optional[ModelClient] = None
    reporter: Optional["ProgressReporter"] = None
    marker: str = CONFIRMATION_MARKER
    review_max_files: int = 3
    # Mode was inferred from the read-only pattern rather than an EXECUTE: prefix
    read_only: bool = False

    def report(self, step: str) -> None:
        if self.reporter is not None:
            self.reporter.report(current_step=step)

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Run a blocking repository call off the event loop."""
        return await asyncio.to_thread(func, *args)

    def needs_confirmation(self, listing: bool = False) -> bool:
        """Whether an action must go through the gate instead of running.

        Listing actions never do. Anything else does in ask mode, and also
        when the turn was only inferred to be read-only, so a mutating
        action runs undecided only behind an explicit EXECUTE: prefix.
        """
        if listing:
            return False
        return self.mode is ExecutionMode.ASK or self.read_only

    def gate(self, kind: OperationKind, name: str, description: str) -> WorkflowResult:
        """Build the ask-mode result that withholds execution."""
        descriptor = ConfirmationDescriptor(
            operation_name=name,
            description=description,
            original_request=self.text,
        )
        return WorkflowResult(
            response_text=descriptor.render(self.marker),
            operation_kind=kind,
            suggested_actions=list(CONFIRM_ACTIONS),
            confirmation=descriptor,
        )


Handler = Callable[[HandlerContext], Awaitable[WorkflowResult]]


def handler_boundary(kind: OperationKind, step: str) -> Callable[[Handler], Handler]:
    """Convert any handler exception into a textual result."""

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(ctx: HandlerContext) -> WorkflowResult:
            try:
                return await func(ctx)
            except Exception as exc:  # noqa: BLE001 - errors become the turn's result
                logger.warning("handler.failed", operation=kind.value, step=step, error=str(exc))
                return WorkflowResult(
                    response_text=f"Error during {step}: {exc}",
                    operation_kind=kind,
                )

        return wrapper

    return decorator


def _suggestion(kind: OperationKind, text: str, actions: Optional[List[str]] = None) -> WorkflowResult:
    return WorkflowResult(
        response_text=text,
        operation_kind=kind,
        suggested_actions=list(actions or SUGGEST_ACTIONS),
    )


async def _parse_action(kind: OperationKind, ctx: HandlerContext) -> ParsedAction:
    resolution = await SUB_PARSERS[kind].parse(ctx.text, ctx.model)
    return resolution.value


# =============================================================================
# status
# =============================================================================

STATUS_INSTRUCTIONS = (
    "Git Status Instructions:\n\n"
    "To inspect your repository manually:\n\n"
    "1. Show working tree status:\n   git status\n\n"
    "2. Short format:\n   git status -s\n\n"
    "3. Show the current branch:\n   git branch --show-current\n\n"
    "4. Recent commits:\n   git log --oneline -5"
)


def status_icon(status: str) -> str:
    first = status[:1]
    second = status[1:2]
    if first in STATUS_ICONS:
        return STATUS_ICONS[first]
    if first == " " and second in ("M", "D"):
        return STATUS_ICONS[second]
    return "📄"


def format_status(status: RepositoryStatus) -> str:
    text = "📊 **Git Repository Status**\n\n"
    text += f"🌿 **Current Branch:** {status.branch}\n"
    text += f"📁 **Directory:** {status.working_directory}\n\n"

    if status.is_clean:
        text += "✅ **Status:** Working directory is clean\n\n"
    else:
        text += "⚠️  **Status:** You have uncommitted changes\n\n"
        text += "**📝 File Changes:**\n"
        for change in status.changes:
            text += f"{status_icon(change.status)} {change.path}\n"
        text += "\n"

    if status.recent_commits:
        text += "**📚 Recent Commits:**\n"
        for commit in status.recent_commits[:3]:
            text += f"• {commit}\n"
    return text


@handler_boundary(OperationKind.STATUS, "git status analysis")
async def handle_status(ctx: HandlerContext) -> WorkflowResult:
    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.STATUS, STATUS_INSTRUCTIONS)

    ctx.report("analyzing_git_status")
    status = await ctx.run(ctx.repository.status)
    return WorkflowResult(
        response_text=format_status(status),
        operation_kind=OperationKind.STATUS,
        suggested_actions=["View changes", "Commit changes", "Create branch"],
    )


# =============================================================================
# diff
# =============================================================================

DIFF_INSTRUCTIONS = (
    "Git Diff Instructions:\n\n"
    "To inspect changes manually:\n\n"
    "1. Unstaged changes:\n   git diff\n\n"
    "2. Staged changes:\n   git diff --cached\n\n"
    "3. Changes in one file:\n   git diff <file>\n\n"
    "4. Summary only:\n   git diff --stat"
)


@handler_boundary(OperationKind.DIFF, "git diff analysis")
async def handle_diff(ctx: HandlerContext) -> WorkflowResult:
    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.DIFF, DIFF_INSTRUCTIONS)

    ctx.report("analyzing_changes")
    path_match = _DIFF_PATH.search(ctx.text)
    path = path_match.group(1) if path_match else None
    diff = await ctx.run(ctx.repository.diff, path)

    if not diff.strip():
        return WorkflowResult(
            response_text="✅ **No Changes:** Your working directory is clean with no uncommitted changes.",
            operation_kind=OperationKind.DIFF,
            suggested_actions=["Create new changes", "Pull latest", "Switch branch"],
        )

    analyzer = DiffAnalyzer()
    summary = analyzer.format_summary(analyzer.analyze(diff))
    return WorkflowResult(
        response_text=f"📝 **Changes Found:**\n\n{summary}\n\n```diff\n{diff.rstrip()}\n```",
        operation_kind=OperationKind.DIFF,
        suggested_actions=["Review changes", "Stage files", "Commit changes"],
    )


# =============================================================================
# commit
# =============================================================================

COMMIT_INSTRUCTIONS = (
    "Smart Commit Instructions:\n\n"
    "To commit your changes manually:\n\n"
    "1. Stage all changes:\n   git add .\n\n"
    "2. Check what will be committed:\n   git status\n\n"
    '3. Create commit with message:\n   git commit -m "your descriptive message"\n\n'
    "4. Or let gitchat do it automatically:\n"
    '   Just say "yes" to let me handle staging, message generation, and committing!'
)

GIT_IDENTITY_HELP = (
    "Git user configuration required. Please set:\n"
    '  git config user.name "Your Name"\n'
    '  git config user.email "your.email@example.com"'
)


async def _smart_commit(ctx: HandlerContext) -> str:
    repo = ctx.repository
    if not await ctx.run(repo.has_changes):
        return "No changes to commit. Your working tree is clean."

    await ctx.run(repo.stage_all)
    staged = await ctx.run(repo.staged_diff)
    if not staged.strip():
        return "No changes were staged for commit."

    ctx.report("generating_commit_message")
    resolution = await CommitMessageGenerator(ctx.model).generate(staged, ctx.text)
    message = resolution.value

    try:
        output = await ctx.run(repo.commit, message)
    except GitCommandError as exc:
        if "nothing to commit" in str(exc):
            return "No changes to commit. Your working tree is clean."
        if "Please tell me who you are" in str(exc):
            return GIT_IDENTITY_HELP
        raise

    info = await ctx.run(repo.last_commit)
    logger.info("commit.created", commit=info, message_source=resolution.source.value)
    return f'✅ Successfully committed changes!\n\nCommit: {info}\nMessage: "{message}"\n\n{output}'.rstrip()


@handler_boundary(OperationKind.COMMIT, "smart commit")
async def handle_commit(ctx: HandlerContext) -> WorkflowResult:
    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(
            OperationKind.COMMIT,
            COMMIT_INSTRUCTIONS,
            ["Execute smart commit", "Stage manually", "Cancel"],
        )

    ctx.report("analyzing_commit_request")
    if ctx.needs_confirmation():
        return ctx.gate(
            OperationKind.COMMIT,
            "Smart Commit",
            "This will stage all changes, generate a commit message and create a commit.",
        )

    ctx.report("executing_smart_commit")
    return WorkflowResult(
        response_text=await _smart_commit(ctx),
        operation_kind=OperationKind.COMMIT,
        suggested_actions=["View commit", "Push changes", "Create branch"],
    )


# =============================================================================
# branch
# =============================================================================

BRANCH_ACTIONS = {
    "create": ["Switch to branch", "Push branch", "List branches"],
    "switch": ["View status", "Create new branch", "Merge branch"],
    "delete": ["List branches", "Create new branch", "Switch branch"],
    "merge": ["View status", "Push changes", "Create branch"],
    "list": ["Create branch", "Switch branch", "Delete branch"],
}


def branch_instructions(op: ParsedAction) -> str:
    name = op.target or "<branch-name>"
    base = "Git Branch Instructions:\n\nCommon branch operations:\n\n"
    if op.action == "create":
        return base + f"1. Create new branch:\n   git checkout -b {name}\n\n2. Create and switch:\n   git switch -c {name}"
    if op.action == "switch":
        return base + f"1. Switch to branch:\n   git checkout {name}\n\n2. Or use switch:\n   git switch {name}"
    if op.action == "delete":
        return base + f"1. Delete branch:\n   git branch -d {name}\n\n2. Force delete:\n   git branch -D {name}"
    if op.action == "merge":
        return base + f"1. Merge branch:\n   git merge {name}\n\n2. No fast-forward:\n   git merge --no-ff {name}"
    return base + (
        "1. List branches:\n   git branch\n\n"
        "2. List all branches:\n   git branch -a\n\n"
        "3. Create new branch:\n   git checkout -b <branch-name>\n\n"
        "4. Switch branch:\n   git checkout <branch-name>"
    )


def branch_description(op: ParsedAction) -> Dict[str, str]:
    if op.action == "create":
        return {"name": "Create Branch", "description": f'This will create a new Git branch "{op.target}" and switch to it.'}
    if op.action == "switch":
        return {"name": "Switch Branch", "description": f'This will switch to the "{op.target}" branch.'}
    if op.action == "delete":
        return {"name": "Delete Branch", "description": f'This will delete the "{op.target}" branch (potentially destructive).'}
    return {"name": "Merge Branch", "description": f'This will merge the "{op.target}" branch into the current branch.'}


@handler_boundary(OperationKind.BRANCH, "branch workflow")
async def handle_branch(ctx: HandlerContext) -> WorkflowResult:
    ctx.report("analyzing_branch_operation")
    op = await _parse_action(OperationKind.BRANCH, ctx)

    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.BRANCH, branch_instructions(op))

    if op.action != "list" and not op.target:
        listing = await ctx.run(ctx.repository.list_branches)
        return WorkflowResult(
            response_text=f"Please name the branch to {op.action}, for example `{op.action} branch feature-x`.\n\n{listing}",
            operation_kind=OperationKind.BRANCH,
            suggested_actions=BRANCH_ACTIONS["list"],
        )

    if ctx.needs_confirmation(listing=op.action == "list"):
        info = branch_description(op)
        return ctx.gate(OperationKind.BRANCH, info["name"], info["description"])

    ctx.report("executing_branch_operation")
    repo = ctx.repository
    operations = {
        "list": repo.list_branches,
        "create": repo.create_branch,
        "switch": repo.switch_branch,
        "delete": repo.delete_branch,
        "merge": repo.merge_branch,
    }
    args = () if op.action == "list" else (op.target,)
    result = await ctx.run(operations[op.action], *args)
    return WorkflowResult(
        response_text=result,
        operation_kind=OperationKind.BRANCH,
        suggested_actions=BRANCH_ACTIONS[op.action],
    )


# =============================================================================
# remote
# =============================================================================

REMOTE_DESCRIPTIONS = {
    "push": ("Git Push", "This will upload your commits to the remote repository."),
    "pull": ("Git Pull", "This will download and merge changes from remote."),
    "fetch": ("Git Fetch", "This will download updates from remote without merging."),
}

REMOTE_ACTIONS = {
    "push": ["View status", "Create PR", "Switch branch"],
    "pull": ["View changes", "Merge conflicts", "Push changes"],
    "fetch": ["View status", "Pull changes", "Switch branch"],
    "status": ["Push changes", "Pull updates", "Fetch remote"],
}


def remote_instructions(op: ParsedAction) -> str:
    base = "Git Remote Instructions:\n\nCommon remote operations:\n\n"
    if op.action == "push":
        return base + (
            "1. Push current branch:\n   git push\n\n"
            "2. Push specific branch:\n   git push origin <branch-name>\n\n"
            "3. Push and set upstream:\n   git push -u origin <branch-name>"
        )
    if op.action == "pull":
        return base + (
            "1. Pull current branch:\n   git pull\n\n"
            "2. Pull specific branch:\n   git pull origin <branch-name>\n\n"
            "3. Pull with rebase:\n   git pull --rebase"
        )
    if op.action == "fetch":
        return base + (
            "1. Fetch all remotes:\n   git fetch\n\n"
            "2. Fetch specific remote:\n   git fetch origin\n\n"
            "3. Fetch and prune:\n   git fetch --prune"
        )
    return base + (
        "1. View remotes:\n   git remote -v\n\n"
        "2. Push changes:\n   git push\n\n"
        "3. Pull updates:\n   git pull\n\n"
        "4. Fetch updates:\n   git fetch"
    )


@handler_boundary(OperationKind.REMOTE, "remote workflow")
async def handle_remote(ctx: HandlerContext) -> WorkflowResult:
    ctx.report("analyzing_remote_operation")
    op = await _parse_action(OperationKind.REMOTE, ctx)

    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.REMOTE, remote_instructions(op))

    if ctx.needs_confirmation(listing=op.action == "status"):
        name, description = REMOTE_DESCRIPTIONS[op.action]
        return ctx.gate(OperationKind.REMOTE, name, description)

    ctx.report("executing_remote_operation")
    repo = ctx.repository
    operations = {
        "status": repo.remote_status,
        "push": repo.push,
        "pull": repo.pull,
        "fetch": repo.fetch,
    }
    result = await ctx.run(operations[op.action])
    return WorkflowResult(
        response_text=result,
        operation_kind=OperationKind.REMOTE,
        suggested_actions=REMOTE_ACTIONS[op.action],
    )


# =============================================================================
# stash
# =============================================================================

STASH_DESCRIPTIONS = {
    "save": ("Git Stash Save", "This will temporarily save your current changes and clean your working directory."),
    "pop": ("Git Stash Pop", "This will restore the most recent stash and remove it from the stash list."),
    "apply": ("Git Stash Apply", "This will restore a stash without removing it from the stash list."),
    "drop": ("Git Stash Drop", "This will permanently delete a stash (cannot be undone)."),
    "clear": ("Git Stash Clear", "This will permanently delete all stashes (cannot be undone)."),
}

STASH_ACTIONS = {
    "save": ["View stashes", "Apply stash", "Continue work"],
    "pop": ["View status", "Commit changes", "Stash again"],
    "apply": ["View status", "Commit changes", "Stash again"],
    "drop": ["View remaining stashes", "Create new stash", "Continue work"],
    "clear": ["View remaining stashes", "Create new stash", "Continue work"],
    "list": ["Save stash", "Apply stash", "Drop stash"],
}


def stash_instructions(op: ParsedAction) -> str:
    base = "Git Stash Instructions:\n\nTo manually stash your changes:\n\n"
    if op.action == "save":
        return base + (
            "1. Save current changes:\n   git stash\n\n"
            '2. Save with message:\n   git stash push -m "your message"\n\n'
            '3. Save specific files:\n   git stash push -m "message" -- <file1> <file2>'
        )
    if op.action == "pop":
        return base + (
            "1. Restore latest stash:\n   git stash pop\n\n"
            "2. Restore specific stash:\n   git stash pop stash@{0}\n\n"
            "3. Restore without removing:\n   git stash apply stash@{0}"
        )
    if op.action == "apply":
        return base + (
            "1. Apply latest stash:\n   git stash apply\n\n"
            "2. Apply specific stash:\n   git stash apply stash@{0}\n\n"
            "3. Apply to different branch:\n   git stash branch <new-branch> stash@{0}"
        )
    if op.action in ("drop", "clear"):
        return base + (
            "1. Delete latest stash:\n   git stash drop\n\n"
            "2. Delete specific stash:\n   git stash drop stash@{0}\n\n"
            "3. Delete all stashes:\n   git stash clear"
        )
    return base + (
        "1. View stashes:\n   git stash list\n\n"
        "2. View stash content:\n   git stash show\n\n"
        "3. View detailed diff:\n   git stash show -p stash@{0}"
    )


@handler_boundary(OperationKind.STASH, "stash workflow")
async def handle_stash(ctx: HandlerContext) -> WorkflowResult:
    ctx.report("analyzing_stash_operation")
    op = await _parse_action(OperationKind.STASH, ctx)

    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.STASH, stash_instructions(op))

    if ctx.needs_confirmation(listing=op.action == "list"):
        name, description = STASH_DESCRIPTIONS[op.action]
        if op.target:
            description = f"{description} Target: {op.target}"
        return ctx.gate(OperationKind.STASH, name, description)

    ctx.report("executing_stash_operation")
    repo = ctx.repository
    if op.action == "list":
        result = await ctx.run(repo.stash_list)
    elif op.action == "clear":
        result = await ctx.run(repo.stash_clear)
    else:
        operations = {
            "save": repo.stash_save,
            "pop": repo.stash_pop,
            "apply": repo.stash_apply,
            "drop": repo.stash_drop,
        }
        result = await ctx.run(operations[op.action], op.target)

    return WorkflowResult(
        response_text=result,
        operation_kind=OperationKind.STASH,
        suggested_actions=STASH_ACTIONS[op.action],
    )


# =============================================================================
# undo
# =============================================================================

UNDO_DESCRIPTIONS = {
    "last_commit": ("Undo Last Commit", "This will undo the most recent commit (revert if pushed, soft reset otherwise)."),
    "uncommitted": ("Undo Uncommitted Changes", "This will stash your uncommitted changes so they can be restored later."),
    "commit": ("Revert Commit", "This will create a new commit that reverts {target}."),
    "merge": ("Undo Merge", "This will revert the most recent merge commit."),
    "push": ("Undo Push", "This will create a revert commit for the last pushed commit."),
}

UNDO_ACTIONS = {
    "last_commit": ["View status", "Re-commit changes", "Create new branch"],
    "uncommitted": ["View stash", "Continue working", "Check status"],
    "commit": ["View status", "Check history", "Push changes"],
    "merge": ["View branches", "Create new merge", "Check conflicts"],
    "push": ["View remote status", "Create new commit", "Check history"],
    "options": ["View status", "Check history", "Continue working"],
}


def undo_instructions(op: ParsedAction) -> str:
    base = "Git Undo Instructions:\n\n"
    if op.action == "last_commit":
        return base + (
            "**Undo Last Commit:**\n\n"
            "1. Keep changes staged:\n   `git reset --soft HEAD~1`\n\n"
            "2. Keep changes unstaged:\n   `git reset --mixed HEAD~1`\n\n"
            "3. Discard changes completely:\n   `git reset --hard HEAD~1`\n\n"
            "**Choose --soft to edit and re-commit.**"
        )
    if op.action == "uncommitted":
        return base + (
            "**Undo Uncommitted Changes:**\n\n"
            "1. Stash changes (reversible):\n   `git stash`\n\n"
            "2. Discard all changes:\n   `git reset --hard HEAD`\n\n"
            "3. Discard specific file:\n   `git checkout HEAD -- <file>`"
        )
    if op.action == "commit":
        target = op.target or "<commit>"
        return base + (
            "**Undo Specific Commit:**\n\n"
            f"1. Create revert commit (keeps history):\n   `git revert {target}`\n\n"
            f"2. Revert a merge commit:\n   `git revert -m 1 {target}`\n\n"
            f"3. Interactive rebase (rewrites history, only if not pushed):\n   `git rebase -i {target}~1`"
        )
    if op.action == "merge":
        return base + (
            "**Undo Merge:**\n\n"
            "1. Revert merge commit:\n   `git revert -m 1 HEAD`\n\n"
            "2. Reset to before merge:\n   `git reset --hard HEAD~1`\n\n"
            "**Use revert for shared repositories.**"
        )
    if op.action == "push":
        return base + (
            "**Undo Pushed Changes:**\n\n"
            "1. Create revert commit (safe):\n   `git revert HEAD`\n   `git push`\n\n"
            "2. Force push reset (dangerous):\n   `git reset --hard HEAD~1`\n   `git push --force-with-lease`\n\n"
            "**Always prefer revert for shared repos.**"
        )
    return base + (
        "**Common Undo Operations:**\n\n"
        "• Undo last commit: `git reset --soft HEAD~1`\n"
        "• Undo changes: `git stash`\n"
        "• Undo merge: `git revert -m 1 HEAD`\n"
        "• Undo push: `git revert HEAD && git push`"
    )


async def _execute_undo(ctx: HandlerContext, op: ParsedAction) -> str:
    repo = ctx.repository
    if op.action == "options":
        return await ctx.run(repo.undo_options)
    if op.action == "uncommitted":
        return await ctx.run(repo.stash_uncommitted)
    if op.action == "last_commit":
        return await ctx.run(repo.undo_last_commit)
    if op.action == "commit":
        return await ctx.run(repo.revert_commit, op.target)
    if op.action == "merge":
        return await ctx.run(repo.undo_last_merge)

    result = await ctx.run(repo.revert_commit, "HEAD")
    return f"{result}\n\n**Next step:** publish the revert with `git push`."


@handler_boundary(OperationKind.UNDO, "undo workflow")
async def handle_undo(ctx: HandlerContext) -> WorkflowResult:
    ctx.report("analyzing_undo_request")
    op = await _parse_action(OperationKind.UNDO, ctx)

    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.UNDO, undo_instructions(op), ["Execute undo", "Learn more", "Cancel"])

    if ctx.needs_confirmation(listing=op.action == "options"):
        name, description = UNDO_DESCRIPTIONS[op.action]
        return ctx.gate(OperationKind.UNDO, name, description.format(target=op.target))

    ctx.report("executing_undo_operation")
    return WorkflowResult(
        response_text=await _execute_undo(ctx, op),
        operation_kind=OperationKind.UNDO,
        suggested_actions=UNDO_ACTIONS[op.action],
    )


# =============================================================================
# review
# =============================================================================

REVIEW_INSTRUCTIONS = (
    "Code Review Instructions:\n\n"
    "To manually review your code:\n\n"
    "1. Check modified files:\n   git status\n\n"
    "2. View changes:\n   git diff\n\n"
    "3. Review specific file:\n   git diff <filename>\n\n"
    "4. Use linting tools:\n   ruff check . / npm run lint (if available)\n\n"
    "5. Run tests:\n   pytest / npm test (if available)\n\n"
    "6. Check code quality:\n"
    "   - Look for code smells\n"
    "   - Check for security issues\n"
    "   - Verify error handling\n"
    "   - Review performance implications"
)


@handler_boundary(OperationKind.REVIEW, "code review")
async def handle_review(ctx: HandlerContext) -> WorkflowResult:
    if ctx.mode is ExecutionMode.SUGGEST:
        return _suggestion(OperationKind.REVIEW, REVIEW_INSTRUCTIONS, ["Execute review", "Learn more", "Cancel"])

    ctx.report("analyzing_code")
    reviewer = CodeReviewer(ctx.repository, max_files=ctx.review_max_files)
    report = await ctx.run(reviewer.review)
    return WorkflowResult(
        response_text=report,
        operation_kind=OperationKind.REVIEW,
        suggested_actions=["Fix issues", "Run linter", "Commit changes"],
    )


# =============================================================================
# off-topic redirect
# =============================================================================

GENERAL_CHAT_TEMPLATE = """Hi! I'm gitchat, your intelligent Git and code assistant.

I notice your question "{text}" doesn't seem to be related to Git or code development.

I specialize in:

🔧 **Git Operations:**
- Repository status and branch information
- File changes and differences
- Commit assistance and message generation
- Branch, remote, stash and undo workflows

📋 **Code Review:**
- Code quality analysis
- Bug detection and suggestions
- Best practice recommendations

Please ask me something related to Git version control or code review."""


def general_chat_result(text: str) -> WorkflowResult:
    """Canned redirect for off-topic requests."""
    return WorkflowResult(
        response_text=GENERAL_CHAT_TEMPLATE.format(text=text),
        suggested_actions=["Show git status", "Review my code", "Show changes"],
        workflow_type=WorkflowType.GENERAL_CHAT,
    )


HANDLERS: Dict[OperationKind, Handler] = {
    OperationKind.STATUS: handle_status,
    OperationKind.DIFF: handle_diff,
    OperationKind.COMMIT: handle_commit,
    OperationKind.BRANCH: handle_branch,
    OperationKind.REMOTE: handle_remote,
    OperationKind.STASH: handle_stash,
    OperationKind.UNDO: handle_undo,
    OperationKind.REVIEW: handle_review,
}
