"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

import click

from gtown.cli.output import user_output
from gtown.core.branches.abc import BranchHierarchy
from gtown.core.branches.real import RealBranchHierarchy
from gtown.core.git.abc import Git
from gtown.core.git.real import RealGit
from gtown.core.global_config import (
    FilesystemGlobalConfigOps,
    GlobalConfig,
    GlobalConfigOps,
    load_or_default,
)
from gtown.core.repo_discovery import NoRepoSentinel, RepoContext, discover_repo_or_sentinel
from gtown.core.steps.run_state_store import RealRunStateStore, RunStateStore
from gtown.core.time.abc import Time
from gtown.core.time.real import RealTime
from gtown.core.user_feedback import InteractiveFeedback, SuppressedFeedback, UserFeedback


@dataclass(frozen=True)
class GtownContext:
    """Immutable context holding all dependencies for gtown operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    git: Git
    branches: BranchHierarchy
    run_state_store: RunStateStore
    time: Time
    config_ops: GlobalConfigOps
    feedback: UserFeedback
    cwd: Path  # Current working directory at CLI invocation
    global_config: GlobalConfig
    repo: RepoContext | NoRepoSentinel

    @property
    def offline(self) -> bool:
        return self.global_config.offline

    @staticmethod
    def for_test(
        git: Git | None = None,
        branches: BranchHierarchy | None = None,
        run_state_store: RunStateStore | None = None,
        time: Time | None = None,
        config_ops: GlobalConfigOps | None = None,
        feedback: UserFeedback | None = None,
        cwd: Path | None = None,
        global_config: GlobalConfig | None = None,
        repo: RepoContext | NoRepoSentinel | None = None,
    ) -> "GtownContext":
        """Create test context with optional pre-configured integration classes.

        Unspecified dependencies default to fakes. The repository defaults to
        a RepoContext rooted at the FakeGit repository root, and cwd defaults
        to that root.

        Example:
            >>> git = FakeGit(current_branch="feature", branch_heads={...})
            >>> ctx = GtownContext.for_test(git=git, branches=FakeBranchHierarchy(...))
        """
        from gtown.core.branches.fake import FakeBranchHierarchy
        from gtown.core.git.fake import FakeGit
        from gtown.core.global_config import InMemoryGlobalConfigOps
        from gtown.core.steps.run_state_store import FakeRunStateStore
        from gtown.core.time.fake import FakeTime

        if git is None:
            git = FakeGit()

        if branches is None:
            branches = FakeBranchHierarchy()

        if run_state_store is None:
            run_state_store = FakeRunStateStore()

        if time is None:
            time = FakeTime()

        if feedback is None:
            feedback = InteractiveFeedback()

        if global_config is None:
            global_config = GlobalConfig(state_root=Path("/test/gtown"), offline=False)

        if config_ops is None:
            config_ops = InMemoryGlobalConfigOps(config=global_config)

        if repo is None:
            root = git.get_repository_root(cwd or Path("/repo")) or Path("/repo")
            repo = RepoContext(
                root=root,
                repo_name=root.name,
                state_dir=global_config.state_root / "repos" / root.name,
            )

        if cwd is None:
            cwd = repo.root if isinstance(repo, RepoContext) else Path("/test/default/cwd")

        return GtownContext(
            git=git,
            branches=branches,
            run_state_store=run_state_store,
            time=time,
            config_ops=config_ops,
            feedback=feedback,
            cwd=cwd,
            global_config=global_config,
            repo=repo,
        )


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        tuple[Path | None, str | None]: (path, error_message)
    """
    try:
        return (Path.cwd(), None)
    except (FileNotFoundError, OSError):
        return (None, "Current working directory no longer exists")


def create_context(*, quiet: bool = False) -> GtownContext:
    """Create production context with real implementations.

    Args:
        quiet: If True, use SuppressedFeedback so only warnings and errors show

    Returns:
        GtownContext with real implementations
    """
    # 1. Capture cwd (no deps)
    cwd, error_msg = safe_cwd()
    if cwd is None:
        assert error_msg is not None
        user_output(click.style("Error: ", fg="red") + error_msg)
        raise SystemExit(1)

    # 2. Load global config (missing file means defaults)
    config_ops = FilesystemGlobalConfigOps()
    try:
        global_config = load_or_default(config_ops)
    except ValueError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from None

    # 3. Discover repository
    git: Git = RealGit()
    repo = discover_repo_or_sentinel(cwd, global_config.state_root, git)

    # 4. Repository-scoped integrations
    if isinstance(repo, RepoContext):
        branches: BranchHierarchy = RealBranchHierarchy(repo.root, git)
        state_dir = repo.state_dir
    else:
        branches = RealBranchHierarchy(cwd, git)
        state_dir = global_config.state_root / "repos" / "_no_repo"

    feedback: UserFeedback = SuppressedFeedback() if quiet else InteractiveFeedback()

    return GtownContext(
        git=git,
        branches=branches,
        run_state_store=RealRunStateStore(state_dir),
        time=RealTime(),
        config_ops=config_ops,
        feedback=feedback,
        cwd=cwd,
        global_config=global_config,
        repo=repo,
    )
