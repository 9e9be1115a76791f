"""Interactive REPL shell for the tree."""

import shlex
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree as RichTree

from treefs.config import TreeFSConfig
from treefs.vfs import Node, Resolution, Session
from treefs.vfs.session import CommandResult, split_path

FOLDER_STYLE = "cyan"
FILE_STYLE = "yellow"
SYMLINK_STYLE = "dodger_blue1"


def styled_name(node: Node) -> str:
    """Rich markup for a node name, coloured and suffixed by kind."""
    name = escape(node.name)
    if node.is_folder:
        return f"[{FOLDER_STYLE}]{name}/[/{FOLDER_STYLE}]"
    if node.is_symlink:
        return f"[{SYMLINK_STYLE}]{name}@[/{SYMLINK_STYLE}]"
    return f"[{FILE_STYLE}]{name}[/{FILE_STYLE}]"


def format_name(node: Node) -> str:
    name = styled_name(node)
    if node.is_symlink:
        name += f" -> {escape(node.target_path)}"
    return name


def format_info(node: Node) -> str:
    if node.is_folder:
        return f"{node.item_count} items"
    if node.is_file:
        return f"{node.size}B"
    return ""


def render_tree(label: str, lines: List[Tuple[int, Node]]) -> RichTree:
    """Build a rich tree from (depth, node) pairs in display order."""
    display = RichTree(f"[{FOLDER_STYLE}]{escape(label)}[/{FOLDER_STYLE}]")
    branches = [display]
    for depth, node in lines:
        del branches[depth + 1:]
        branches.append(branches[depth].add(f"{format_name(node)} [dim]{format_info(node)}[/dim]"))
    return display


class PathCompleter(Completer):
    """Tab completion for tree paths."""

    def __init__(self, session: Session):
        self.session = session

    def get_completions(self, document, complete_event):
        """Get path completion candidates."""
        text = document.text_before_cursor
        words = text.split()

        if len(words) > 1 and not text.endswith(" "):
            partial = words[-1]
        else:
            partial = ""

        for candidate in self.session.complete(partial):
            yield Completion(candidate, start_position=-len(partial))


class TreeShell:
    """Interactive shell over a :class:`~treefs.vfs.Session`.

    Provides a Linux-like shell interface with commands:
    - mkdir, touch, edit, rm, mov, rename, symlink: Change the tree
    - cd, cdup, pwd, fullpath, ls, lsrecursive: Navigate
    - cat/echo: Read file content (follows one symlink hop)
    - merge, sortBy: Reorganise folders
    - count, countFiles, countFolders: Statistics
    - save, load, compress, decompress: Snapshots
    - help, ?, exit, quit
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        config: Optional[TreeFSConfig] = None,
        prompt_session: Optional[PromptSession] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the REPL shell.

        Args:
            session: Tree session to drive (a fresh empty tree by default)
            config: Shell configuration
            prompt_session: Source of interactive input; built from config if omitted
            console: Rich console for output
        """
        self.config = config or TreeFSConfig()
        self.session = session or Session(max_symlink_hops=self.config.resolver.max_symlink_hops)
        self.console = console or Console(no_color=not self.config.shell.color)
        self.running = True

        if prompt_session is None:
            history_file = self.config.shell.history_file
            history = FileHistory(str(Path(history_file).expanduser())) if history_file else InMemoryHistory()
            prompt_session = PromptSession(
                history=history,
                completer=PathCompleter(self.session),
                style=Style.from_dict(
                    {
                        "path": "ansiblue bold",
                        "arrow": "ansigreen bold",
                    }
                ),
            )
        self.prompt_session = prompt_session

        self.commands: Dict[str, Callable[[List[str]], Optional[str]]] = {
            "mkdir": self.cmd_mkdir,
            "touch": self.cmd_touch,
            "ls": self.cmd_ls,
            "lsrecursive": self.cmd_lsrecursive,
            "tree": self.cmd_lsrecursive,
            "edit": self.cmd_edit,
            "cat": self.cmd_cat,
            "echo": self.cmd_cat,
            "cd": self.cmd_cd,
            "cdup": self.cmd_cdup,
            "pwd": self.cmd_pwd,
            "fullpath": self.cmd_pwd,
            "rm": self.cmd_rm,
            "mov": self.cmd_mov,
            "mv": self.cmd_mov,
            "rename": self.cmd_rename,
            "symlink": self.cmd_symlink,
            "ln": self.cmd_symlink,
            "merge": self.cmd_merge,
            "sortBy": self.cmd_sort,
            "count": self.cmd_count,
            "countFiles": self.cmd_count_files,
            "countFolders": self.cmd_count_folders,
            "save": self.cmd_save,
            "load": self.cmd_load,
            "compress": self.cmd_compress,
            "decompress": self.cmd_load,
            "clear": self.cmd_clear,
            "help": self.cmd_help,
            "?": self.cmd_help,
            "exit": self.cmd_exit,
            "quit": self.cmd_exit,
        }

    def get_prompt(self):
        """Two-line prompt showing the current path."""
        return [
            ("", "┌──["),
            ("class:path", self.session.pwd()),
            ("", "]\n└─"),
            ("class:arrow", ">"),
            ("", " "),
        ]

    def run(self):
        """Run the shell main loop."""
        self.console.print("[bold cyan]treefs shell[/bold cyan] - in-memory folder tree")
        self.console.print("Type 'help' for available commands, 'exit' to quit.\n")

        while self.running:
            try:
                line = self.prompt_session.prompt(self.get_prompt()).strip()
                if not line:
                    continue
                self.execute(line)
            except KeyboardInterrupt:
                self.console.print("\nUse 'exit' or 'quit' to exit the shell.")
                continue
            except EOFError:
                break

        self.cleanup()

    def execute(self, line: str) -> Optional[str]:
        """Parse and execute a command line.

        Args:
            line: Command line to execute

        Returns:
            Plain-text output of the command, if any
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.console.print(f"[red]Parse error:[/red] {e}")
            return None

        if not parts:
            return None

        cmd, args = parts[0], parts[1:]
        if cmd not in self.commands:
            self.console.print(
                f"[red]Unknown command:[/red] {escape(cmd)}. Type 'help' for available commands."
            )
            return None
        return self.commands[cmd](args)

    # Interactive collaborators

    def ask(self, message: str) -> str:
        return self.prompt_session.prompt(message)

    def confirm_removal(self, node: Node) -> bool:
        if not self.config.shell.confirm_removals:
            return True
        answer = self.ask(f"Do you really want to remove '{node.name}' and its content? (y/n) ")
        return answer.strip().lower() in ("y", "yes")

    def decide_conflict(self, name: str) -> Optional[Resolution]:
        """Ask how to settle a merge conflict; None aborts the merge."""
        self.console.print(f"[yellow]Conflict detected:[/yellow] {escape(name)} already exists. Choose an option:")
        self.console.print("1. Skip\n2. Rename\n3. Overwrite")
        choice = self.ask("Choice: ").strip().lower()
        if choice in ("1", "skip", "s"):
            return Resolution.skip()
        if choice in ("2", "rename", "r"):
            return Resolution.rename(self.ask(f"Enter a new name for {name}: ").strip())
        if choice in ("3", "overwrite", "o"):
            return Resolution.overwrite()
        self.console.print(f"[red]Invalid choice '{escape(choice)}'. Merge stopped.[/red]")
        return None

    # Output

    def report(self, result: CommandResult) -> CommandResult:
        """Print a command's status line in green or red."""
        if result.ok:
            if result.message:
                self.console.print(f"[green]{escape(result.message)}[/green]")
        else:
            self.console.print(f"[red]{result.error}:[/red] {escape(result.message)}")
        return result

    def _usage(self, text: str) -> None:
        self.console.print(f"[red]Usage:[/red] {escape(text)}")

    # Command implementations

    def cmd_mkdir(self, args: List[str]) -> Optional[str]:
        """Create folders.

        Usage: mkdir <path> [path ...]
        """
        if not args:
            self._usage("mkdir <path>")
            return None
        for path in args:
            parent, name = split_path(path)
            self.report(self.session.create_folder(parent, name))
        return None

    def cmd_touch(self, args: List[str]) -> Optional[str]:
        """Create an empty file, or one holding the given text.

        Usage: touch <path> [text ...]
        """
        if not args:
            self._usage("touch <path> [text]")
            return None
        parent, name = split_path(args[0])
        self.report(self.session.create_file(parent, name, " ".join(args[1:])))
        return None

    def cmd_ls(self, args: List[str]) -> Optional[str]:
        """List folder contents.

        Usage: ls [-l] [path]

        Options:
            -l  Long format with size or item count and modification date
        """
        long_format = "-l" in args
        paths = [arg for arg in args if arg != "-l"]
        path = paths[0] if paths else "."
        result = self.session.list(path)
        if not result.ok:
            self.report(result)
            return None
        if not result.value:
            self.console.print("[dim]___Empty____[/dim]")
            return ""

        if not long_format:
            self.console.print("  ".join(format_name(node) for node in result.value))
            return "\n".join(node.name for node in result.value)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Info", justify="right")
        table.add_column("Modified", style="dim")
        table.add_column("Name")

        output_lines = []
        for node in result.value:
            info = format_info(node)
            table.add_row(info, self._format_date(node.modified_at), format_name(node))
            output_lines.append(f"{node.node_type.value}\t{node.name}\t{info}")

        self.console.print(table)
        return "\n".join(output_lines)

    def _format_date(self, timestamp: int) -> str:
        return datetime.fromtimestamp(timestamp).strftime("%d %b %H:%M")

    def cmd_lsrecursive(self, args: List[str]) -> Optional[str]:
        """List a folder and everything below it.

        Usage: lsrecursive [path]
        """
        path = args[0] if args else "."
        result = self.session.tree_lines(path)
        if not result.ok:
            self.report(result)
            return None

        label = self.session.pwd() if path == "." else path
        self.console.print(render_tree(label, result.value))
        return "\n".join("\t" * depth + node.name for depth, node in result.value)

    def cmd_edit(self, args: List[str]) -> Optional[str]:
        """Replace a file's content.

        Usage: edit <file> [text ...]

        Without text the new content is read from the prompt.
        """
        if not args:
            self._usage("edit <file> [text]")
            return None
        if len(args) > 1:
            content = " ".join(args[1:])
        else:
            content = self.ask(f"Enter new content for '{args[0]}': ")
        self.report(self.session.edit(args[0], content))
        return None

    def cmd_cat(self, args: List[str]) -> Optional[str]:
        """Print a file's content, following one symlink hop.

        Usage: cat <file>
        """
        if not args:
            self._usage("cat <file>")
            return None
        result = self.session.read(args[0])
        if not result.ok:
            self.report(result)
            return None
        if result.message:
            self.console.print(f"[dim]{escape(result.message)}[/dim]")
        self.console.print(escape(result.value))
        return result.value

    def cmd_cd(self, args: List[str]) -> Optional[str]:
        """Change folder.

        Usage: cd [path]
        """
        path = args[0] if args else "/"
        result = self.session.cd(path)
        if not result.ok:
            self.report(result)
        return None

    def cmd_cdup(self, args: List[str]) -> Optional[str]:
        """Go to the parent folder.

        Usage: cdup
        """
        result = self.session.cdup()
        if result.ok and result.message.startswith("Already"):
            self.console.print(result.message)
        return None

    def cmd_pwd(self, args: List[str]) -> Optional[str]:
        """Print the current folder's full path.

        Usage: pwd
        """
        path = self.session.pwd()
        self.console.print(escape(path))
        return path

    def cmd_rm(self, args: List[str]) -> Optional[str]:
        """Remove a file, symlink or folder with all its content.

        Usage: rm <path>
        """
        if not args:
            self._usage("rm <path>")
            return None
        self.report(self.session.remove(args[0], self.confirm_removal))
        return None

    def cmd_mov(self, args: List[str]) -> Optional[str]:
        """Move a node into another folder.

        Usage: mov <path> <folder>
        """
        if len(args) != 2:
            self._usage("mov <path> <folder>")
            return None
        self.report(self.session.move(args[0], args[1]))
        return None

    def cmd_rename(self, args: List[str]) -> Optional[str]:
        """Rename a node.

        Usage: rename <path> <new-name>
        """
        if len(args) != 2:
            self._usage("rename <path> <new-name>")
            return None
        self.report(self.session.rename(args[0], args[1]))
        return None

    def cmd_symlink(self, args: List[str]) -> Optional[str]:
        """Create a symbolic link in the current folder.

        Usage: symlink <target-path> <link-name>
        """
        if len(args) != 2:
            self._usage("symlink <target-path> <link-name>")
            return None
        self.report(self.session.create_symlink(".", args[0], args[1]))
        return None

    def cmd_merge(self, args: List[str]) -> Optional[str]:
        """Move everything from one folder into another.

        Usage: merge <source> <destination>

        Name conflicts are settled interactively: skip, rename or overwrite.
        """
        if len(args) != 2:
            self._usage("merge <source> <destination>")
            return None
        result = self.report(self.session.merge(args[1], args[0], self.decide_conflict))
        return result.value.summary() if result.ok else None

    def cmd_sort(self, args: List[str]) -> Optional[str]:
        """Sort a folder's children.

        Usage: sortBy name|date [path]
        """
        if not args:
            self._usage("sortBy name|date [path]")
            return None
        path = args[1] if len(args) > 1 else "."
        self.report(self.session.sort(path, args[0]))
        return None

    def cmd_count(self, args: List[str]) -> Optional[str]:
        """Count files and folders below a folder.

        Usage: count [path]
        """
        path = args[0] if args else "."
        files = self.session.count_files(path)
        folders = self.session.count_folders(path)
        if not files.ok:
            self.report(files)
            return None
        output = f"Files: {files.value}\nFolders: {folders.value}"
        self.console.print(output)
        return output

    def cmd_count_files(self, args: List[str]) -> Optional[str]:
        """Count every file in the tree.

        Usage: countFiles
        """
        output = f"Total files: {self.session.count_files('/').value}"
        self.console.print(output)
        return output

    def cmd_count_folders(self, args: List[str]) -> Optional[str]:
        """Count every folder in the tree.

        Usage: countFolders
        """
        output = f"Total folders: {self.session.count_folders('/').value}"
        self.console.print(output)
        return output

    def cmd_save(self, args: List[str]) -> Optional[str]:
        """Save the whole tree to a snapshot file.

        Usage: save <file>
        """
        if not args:
            self._usage("save <file>")
            return None
        compress = True if self.config.persistence.compress else None
        self.report(self.session.save(args[0], compress=compress))
        return None

    def cmd_compress(self, args: List[str]) -> Optional[str]:
        """Save the whole tree to a gzip-compressed snapshot.

        Usage: compress <file>
        """
        if not args:
            self._usage("compress <file>")
            return None
        self.report(self.session.save(args[0], compress=True))
        return None

    def cmd_load(self, args: List[str]) -> Optional[str]:
        """Replace the tree with a snapshot (plain or compressed).

        Usage: load <file>
        """
        if not args:
            self._usage("load <file>")
            return None
        self.report(self.session.load(args[0]))
        return None

    def cmd_clear(self, args: List[str]) -> Optional[str]:
        """Clear the screen.

        Usage: clear
        """
        self.console.clear()
        return None

    def cmd_help(self, args: List[str]) -> Optional[str]:
        """Show help information.

        Usage: help [command]
        """
        if args:
            cmd = args[0]
            if cmd in self.commands:
                self.console.print(f"[bold]{escape(cmd)}[/bold]")
                self.console.print(escape(self.commands[cmd].__doc__ or "No documentation available."))
            else:
                self.console.print(f"[red]Unknown command:[/red] {escape(cmd)}")
            return None

        self.console.print("[bold cyan]Available Commands:[/bold cyan]\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Command", style="cyan")
        table.add_column("Description", style="white")

        rows = [
            ("mkdir <path>", "Create a folder"),
            ("touch <path> [text]", "Create a file"),
            ("ls [-l] [path]", "List folder contents"),
            ("lsrecursive [path]", "List a folder recursively"),
            ("edit <file> [text]", "Replace file content"),
            ("cat <file>", "Print file content (follows one symlink)"),
            ("cd [path], cdup", "Change folder"),
            ("pwd, fullpath", "Print current folder path"),
            ("rm <path>", "Remove a node and its content"),
            ("mov <path> <folder>", "Move a node"),
            ("rename <path> <name>", "Rename a node"),
            ("symlink <target> <name>", "Create a symbolic link"),
            ("merge <src> <dest>", "Merge two folders"),
            ("sortBy name|date [path]", "Sort a folder"),
            ("count, countFiles, countFolders", "Count nodes"),
            ("save <file>, load <file>", "Snapshot the tree"),
            ("compress <file>, decompress <file>", "Gzip snapshots"),
            ("clear", "Clear the screen"),
            ("help [cmd]", "Show help"),
            ("exit, quit", "Exit the shell"),
        ]
        for usage, description in rows:
            # Usage strings contain [brackets] that rich would read as markup
            table.add_row(escape(usage), description)

        self.console.print(table)
        return None

    def cmd_exit(self, args: List[str]) -> Optional[str]:
        """Exit the shell.

        Usage: exit
        """
        self.running = False
        self.console.print("[cyan]Goodbye![/cyan]")
        return None

    def cleanup(self):
        """Release the tree."""
        self.session.tree.clear()
