"""
Terminal front end for the SSchool API.

Usage:
    sschool login student@example.com
    sschool books --search tolkien
    sschool materials add "Week 1" "Intro to sets"
    sschool admin users --role student
"""

import argparse
import os
import sys
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from sschool.client.api import DEFAULT_API_URL, APIError, AuthenticationRequired, SchoolClient

console = Console()

PROFILE_FIELDS = ("name", "course", "student_id", "semester", "faculty")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="sschool",
        description="SSchool - school administration from the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sschool login me@school.edu              Login (password is prompted)
  sschool whoami                           Show the logged in user
  sschool books --search orwell            Search the book catalog
  sschool materials list                   List your study materials
  sschool admin stats                      Admin dashboard counts
""",
    )
    parser.add_argument(
        "--api-url",
        default=os.environ.get("SSCHOOL_API_URL", DEFAULT_API_URL),
        help="API base URL (default: $SSCHOOL_API_URL or %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command")

    login_parser = subparsers.add_parser("login", help="Login to SSchool")
    login_parser.add_argument("email")
    login_parser.add_argument("--password", "-p", help="Password (prompted when omitted)")

    subparsers.add_parser("logout", help="Forget the stored session")
    subparsers.add_parser("whoami", help="Show the stored user")

    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("name")
    register_parser.add_argument("email")
    register_parser.add_argument("--password", "-p")
    register_parser.add_argument("--admin", action="store_true", help="Register as admin")
    _add_profile_options(register_parser, include_name=False)

    profile_parser = subparsers.add_parser("profile", help="Show or update your profile")
    profile_parser.add_argument("--password", help="New password")
    _add_profile_options(profile_parser, include_name=True)

    books_parser = subparsers.add_parser("books", help="Browse the book catalog")
    _add_page_options(books_parser)

    materials_parser = subparsers.add_parser("materials", help="Your study materials")
    materials_sub = materials_parser.add_subparsers(dest="action", required=True)
    _add_page_options(materials_sub.add_parser("list", help="List your materials"))
    add_material = materials_sub.add_parser("add", help="Add a material")
    add_material.add_argument("title")
    add_material.add_argument("content")

    admin_parser = subparsers.add_parser("admin", help="Admin operations")
    admin_sub = admin_parser.add_subparsers(dest="action", required=True)
    admin_sub.add_parser("stats", help="Dashboard counts and recent users")
    users_parser = admin_sub.add_parser("users", help="List users")
    users_parser.add_argument("--role", choices=["student", "admin"])
    _add_page_options(users_parser)
    user_parser = admin_sub.add_parser("user", help="Show one user")
    user_parser.add_argument("user_id")
    create_admin = admin_sub.add_parser("create-admin", help="Create another admin")
    create_admin.add_argument("name")
    create_admin.add_argument("email")
    create_admin.add_argument("--course", required=True)
    create_admin.add_argument("--faculty", required=True)
    create_admin.add_argument("--password", "-p")
    update_user = admin_sub.add_parser("update-user", help="Update a user")
    update_user.add_argument("user_id")
    update_user.add_argument("--email")
    update_user.add_argument("--role", choices=["student", "admin"])
    _add_profile_options(update_user, include_name=True)
    delete_user = admin_sub.add_parser("delete-user", help="Delete a user and their materials")
    delete_user.add_argument("user_id")
    add_book = admin_sub.add_parser("add-book", help="Add a book to the catalog")
    add_book.add_argument("book_name")
    add_book.add_argument("author")
    add_book.add_argument("--description", default="")
    delete_book = admin_sub.add_parser("delete-book", help="Remove a book")
    delete_book.add_argument("book_id")

    return parser


def _add_profile_options(parser: argparse.ArgumentParser, include_name: bool) -> None:
    if include_name:
        parser.add_argument("--name")
    parser.add_argument("--course")
    parser.add_argument("--student-id", dest="student_id")
    parser.add_argument("--semester")
    parser.add_argument("--faculty")


def _add_page_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--search", "-s")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=10)


def _password(value: Optional[str]) -> str:
    return value or Prompt.ask("Password", password=True)


def _profile_fields(args: argparse.Namespace) -> Dict[str, Any]:
    return {field: getattr(args, field, None) for field in PROFILE_FIELDS}


def _table(title: str, columns: Iterable[str], rows: Iterable[Iterable[Any]]) -> Table:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*["" if value is None else str(value) for value in row])
    return table


def _print_page(title: str, page: Dict[str, Any], columns: List[str], keys: List[str]) -> None:
    rows = [[item.get(key) for key in keys] for item in page["items"]]
    console.print(_table(title, columns, rows))
    console.print(
        f"[dim]Page {page['currentPage']} of {page['totalPages']} ({page['total']} total)[/dim]"
    )


def _print_user(user: Dict[str, Any]) -> None:
    rows = [
        (label, user.get(key))
        for label, key in (
            ("ID", "id"),
            ("Name", "name"),
            ("Email", "email"),
            ("Role", "role"),
            ("Course", "course"),
            ("Student ID", "studentId"),
            ("Semester", "semester"),
            ("Faculty", "faculty"),
        )
    ]
    console.print(_table("User", ["Field", "Value"], rows))


def run_command(client: SchoolClient, args: argparse.Namespace) -> int:
    """Dispatch one parsed command; returns the process exit code"""
    if args.command == "login":
        landing = client.login(args.email, _password(args.password))
        user = client.session.user
        console.print(f"[green]✓ Login successful![/green] Welcome, [bold]{user['name']}[/bold]")
        console.print(f"Opening [cyan]{landing}[/cyan]")
        return 0

    if args.command == "logout":
        client.logout()
        console.print("Logged out.")
        return 0

    if args.command == "whoami":
        session = client.session
        if session is None:
            console.print("[yellow]Not logged in[/yellow]")
            return 1
        _print_user(session.user)
        return 0

    if args.command == "register":
        data = client.register(
            args.name,
            args.email,
            _password(args.password),
            admin=args.admin,
            **_profile_fields(args),
        )
        console.print(f"[green]✓ {data['message']}[/green]")
        return 0

    if args.command == "profile":
        fields = _profile_fields(args)
        fields["password"] = args.password
        if any(value is not None for value in fields.values()):
            data = client.update_profile(**fields)
            console.print(f"[green]✓ {data['message']}[/green]")
            _print_user(data["user"])
        else:
            _print_user(client.profile())
        return 0

    if args.command == "books":
        page = client.books(args.page, args.limit, args.search)
        _print_page("Books", page, ["ID", "Name", "Author"], ["id", "bookName", "author"])
        return 0

    if args.command == "materials":
        if args.action == "add":
            data = client.add_material(args.title, args.content)
            console.print(f"[green]✓ Material added[/green] ({data['material']['id']})")
        else:
            page = client.materials(args.page, args.limit, args.search)
            _print_page("Materials", page, ["ID", "Title", "Content"], ["id", "title", "content"])
        return 0

    if args.command == "admin":
        return _run_admin(client, args)

    return 2


def _run_admin(client: SchoolClient, args: argparse.Namespace) -> int:
    if args.action == "stats":
        stats = client.dashboard_stats()
        counts = [
            ("Users", stats["totalUsers"]),
            ("Students", stats["totalStudents"]),
            ("Admins", stats["totalAdmins"]),
            ("Books", stats["totalBooks"]),
            ("Materials", stats["totalMaterials"]),
        ]
        console.print(_table("Dashboard", ["", "Total"], counts))
        recent = [(u["name"], u["email"], u["role"]) for u in stats["recentUsers"]]
        console.print(_table("Recent users", ["Name", "Email", "Role"], recent))
    elif args.action == "users":
        page = client.users(args.page, args.limit, role=args.role, search=args.search)
        _print_page("Users", page, ["ID", "Name", "Email", "Role"], ["id", "name", "email", "role"])
    elif args.action == "user":
        _print_user(client.user(args.user_id))
    elif args.action == "create-admin":
        data = client.create_admin(args.name, args.email, _password(args.password), args.course, args.faculty)
        console.print(f"[green]✓ {data['message']}[/green]")
    elif args.action == "update-user":
        data = client.update_user(args.user_id, email=args.email, role=args.role, **_profile_fields(args))
        console.print(f"[green]✓ {data['message']}[/green]")
        _print_user(data["user"])
    elif args.action == "delete-user":
        console.print(f"[green]✓ {client.delete_user(args.user_id)['message']}[/green]")
    elif args.action == "add-book":
        data = client.add_book(args.book_name, args.author, args.description)
        console.print(f"[green]✓ {data['message']}[/green] ({data['book']['id']})")
    elif args.action == "delete-book":
        console.print(f"[green]✓ {client.delete_book(args.book_id)['message']}[/green]")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    with SchoolClient(args.api_url) as client:
        try:
            code = run_command(client, args)
        except AuthenticationRequired as e:
            console.print(f"\n[red]✗ {e.message}[/red]")
            console.print("Please login again:  [cyan]sschool login EMAIL[/cyan]")
            code = 1
        except APIError as e:
            console.print(f"\n[red]✗ {e.message}[/red]")
            code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
