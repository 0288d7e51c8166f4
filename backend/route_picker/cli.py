#!/usr/bin/env python3
"""CLI tool for local database and user management.

Usage:
    # Check that the configured database answers
    python -m route_picker.cli check-db

    # Create a user (normally created on first sign-in)
    python -m route_picker.cli create-user --id <subject> --email <email>

    # List all users
    python -m route_picker.cli list-users

    # List a user's routes with trip counts
    python -m route_picker.cli list-routes <user-id>
"""

import argparse
import asyncio
import sys

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from route_picker.core.config import settings
from route_picker.core.database import get_session_factory
from route_picker.services.auth_service import AuthService
from route_picker.services.page_service import PageService


async def cmd_check_db(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Check database connectivity and print the server time.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        result = await session.execute(text("SELECT CURRENT_TIMESTAMP"))
        server_time = result.scalar_one()
    except (SQLAlchemyError, OSError) as e:
        print(f"❌ Database connection failed: {e}", file=sys.stderr)
        return 1

    print("✅ Database connection successful!")
    print(f"   Server time: {server_time}")
    return 0


async def cmd_create_user(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Create a new user.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    service = AuthService(session)
    if await service.get_user_by_id(args.id) is not None:
        print(f"❌ Error: User '{args.id}' already exists", file=sys.stderr)
        return 1

    try:
        user = await service.create_user(args.id, args.email, auth_provider=args.provider)
    except IntegrityError:
        print(f"❌ Error: Email '{args.email}' is already in use", file=sys.stderr)
        return 1

    print("✅ Created user successfully!")
    print(f"   User ID:     {user.id}")
    print(f"   Email:       {user.email}")
    print(f"   Provider:    {user.auth_provider}")
    print(f"   Created at:  {user.created_at}")
    return 0


async def cmd_list_users(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    List all users with pagination.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    users = await AuthService(session).list_users(limit=args.limit, offset=args.offset)

    if not users:
        print("No users found")
        return 0

    print(f"Showing {len(users)} user(s) (limit: {args.limit}, offset: {args.offset}):\n")
    print(f"{'User ID':<34} {'Email':<34} {'Provider':<12} Created At")
    print("-" * 100)

    for user in users:
        created_at_str = user.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{user.id:<34} {user.email:<34} {user.auth_provider:<12} {created_at_str}")

    print("\n💡 Use --limit and --offset to paginate results (e.g., --limit 50 --offset 50 for next page)")
    return 0


async def cmd_list_routes(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    List a user's routes with their group and number of trips.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if await AuthService(session).get_user_by_id(args.user_id) is None:
        print(f"❌ Error: User '{args.user_id}' not found", file=sys.stderr)
        return 1

    routes = await PageService(session).list_routes(args.user_id)
    if not routes:
        print("No routes found")
        return 0

    print(f"{'Route ID':<10} {'Name':<40} {'Group':<10} Trips")
    print("-" * 70)
    for route in routes:
        group = str(route.route_group_id) if route.route_group_id is not None else "-"
        print(f"{route.id:<10} {route.name:<40} {group:<10} {len(route.trips)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Route Picker management CLI tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the database connection
  python -m route_picker.cli check-db

  # Create a user
  python -m route_picker.cli create-user --id "oauth|abc123" --email commuter@example.com

  # List users
  python -m route_picker.cli list-users --limit 20

  # List a user's routes
  python -m route_picker.cli list-routes "oauth|abc123"
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser(
        "check-db",
        help="Check database connectivity",
        description="Connect to the configured database and print the server time.",
    )

    create_user_parser = subparsers.add_parser(
        "create-user",
        help="Create a new user",
        description="Create a user without going through sign-in.",
    )
    create_user_parser.add_argument("--id", type=str, required=True, help="User ID (identity provider subject)")
    create_user_parser.add_argument("--email", type=str, required=True, help="Email address")
    create_user_parser.add_argument(
        "--provider",
        type=str,
        default=settings.AUTH_DEFAULT_PROVIDER,
        help=f"Auth provider (default: {settings.AUTH_DEFAULT_PROVIDER})",
    )

    list_users_parser = subparsers.add_parser(
        "list-users",
        help="List all users with pagination",
        description="Display a paginated list of all users in the system.",
    )
    list_users_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of users to display (default: 50)",
    )
    list_users_parser.add_argument(
        "--offset",
        type=int,
        default=0,
        help="Number of users to skip (default: 0)",
    )

    list_routes_parser = subparsers.add_parser(
        "list-routes",
        help="List a user's routes",
        description="Display every route of a user with its group and trip count.",
    )
    list_routes_parser.add_argument("user_id", type=str, help="User ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI tool.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    command_handlers = {
        "check-db": cmd_check_db,
        "create-user": cmd_create_user,
        "list-users": cmd_list_users,
        "list-routes": cmd_list_routes,
    }

    if handler := command_handlers.get(args.command):

        async def run_with_session() -> int:
            async with get_session_factory()() as session:
                try:
                    return await handler(args, session)
                except Exception as e:
                    print(f"❌ Unexpected error: {e}", file=sys.stderr)
                    return 1

        return asyncio.run(run_with_session())

    print(f"❌ Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
