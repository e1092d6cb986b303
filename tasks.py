"""Invoke tasks for testing, linting, and formatting.

Run tasks with: invoke TASK_NAME

Test Examples:
    invoke test              # Run all tests
    invoke test.unit         # Archive, registry, publisher, puller, sync units
    invoke test.integration  # Publish/pull/sync round trips against the memory store
    invoke test.coverage     # Coverage of artifact_cli (HTML + terminal)

Linting Examples:
    invoke lint.flake8       # Check code style with flake8
    invoke lint.black        # Format code with black
"""

from invoke import Collection, task


@task(help={"verbose": "Show verbose output"})
def test(ctx, verbose=False):
    """Run all tests."""
    cmd = "uv run pytest"
    if verbose:
        cmd += " -v"
    ctx.run(cmd)


@task
def unit(ctx):
    """Run unit tests only."""
    ctx.run("uv run pytest -m unit")


@task
def integration(ctx):
    """Run integration tests only."""
    ctx.run("uv run pytest -m integration")


@task(help={"file": "Specific test file to run", "name": "Test name or pattern"})
def specific(ctx, file=None, name=None):
    """Run specific test file, class, or function.

    Examples:
        invoke test.specific --file tests/unit/test_archive.py
        invoke test.specific --file tests/unit/test_archive.py --name TestPack
        invoke test.specific --name test_pack_follows_symlink_chain
    """
    if not file and not name:
        print("Error: Please specify --file and/or --name")
        return

    cmd = "uv run pytest"
    if file:
        cmd += f" {file}"
    if name:
        cmd += f"::{name}" if file else f" -k {name}"

    ctx.run(cmd)


@task(help={"xml": "Also write coverage.xml"})
def coverage(ctx, xml=False):
    """Generate HTML and terminal coverage reports for artifact_cli."""
    cmd = "uv run pytest --cov=artifact_cli --cov-report=html --cov-report=term-missing"
    if xml:
        cmd += " --cov-report=xml"
    ctx.run(cmd)
    print("\n✓ Coverage report generated in htmlcov/index.html")


@task(help={"pattern": "Test name or pattern to filter"})
def debug_logs(ctx, pattern=None):
    """Run tests with artifact_cli debug logging on the console.

    Example:
        invoke test.debug-logs --pattern test_pull_selects_platform
    """
    cmd = "uv run pytest --log-cli-level=DEBUG"
    if pattern:
        cmd += f" -k {pattern}"
    ctx.run(cmd)


@task
def ci(ctx):
    """Run all tests as if in CI (with XML coverage)."""
    ctx.run("uv run pytest --cov=artifact_cli --cov-report=xml")


# Linting tasks
@task(help={"src": "Path to check (default: artifact_cli)"})
def flake8(ctx, src="artifact_cli"):
    """Run flake8 style checker.

    Example:
        invoke lint.flake8
        invoke lint.flake8 --src artifact_cli/registry
    """
    ctx.run(f"uv run flake8 {src}")


@task(help={"check": "Check only, don't modify files"})
def black(ctx, check=False):
    """Format code with black.

    Example:
        invoke lint.black           # Format files
        invoke lint.black --check   # Check only
    """
    cmd = "uv run black artifact_cli tests main.py"
    if check:
        cmd += " --check"
    ctx.run(cmd)


# Namespace for tests
test_ns = Collection("test")
test_ns.add_task(test, default=True)
test_ns.add_task(unit)
test_ns.add_task(integration)
test_ns.add_task(specific)
test_ns.add_task(coverage)
test_ns.add_task(debug_logs)
test_ns.add_task(ci)

# Namespace for linting
lint_ns = Collection("lint")
lint_ns.add_task(flake8)
lint_ns.add_task(black)

# Register namespaces at module level for invoke to discover
ns = Collection(test_ns, lint_ns)
