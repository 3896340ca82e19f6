# s3source/modules/cli.py
"""
Command line front-end for the S3 package source.
- Uses rich for colored output, tables and spinners.
- Source commands take --uri s3://bucket/prefix.

Usage examples:
  s3source --uri s3://pkgs.example.com/prod specs --remote
  s3source --uri s3://pkgs.example.com/prod install foo 1.0
  s3source --uri s3://pkgs.example.com/prod cache foo 1.0 --path vendor/cache
  s3source pack ./build --name foo --version 1.0 --out dist
  s3source index dist dist/specs.json.gz
"""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from s3source.modules import archive as _archive
from s3source.modules import index as _index
from s3source.modules.config import SourceConfig, config as default_config
from s3source.modules.errors import MissingArchiveError, SourceError
from s3source.modules.source import S3Source
from s3source.modules.spec import PackageSpec

SOURCE_COMMANDS = ("specs", "sync", "install", "cache", "unlock")


def make_console(no_color: bool, quiet: bool) -> Console:
    if no_color:
        return Console(color_system=None, force_terminal=False, markup=False, quiet=quiet)
    return Console(quiet=quiet)


class CLI:
    def __init__(self, console: Console, cfg: SourceConfig):
        self.console = console
        self.config = cfg

    def _source(self, args: argparse.Namespace) -> S3Source:
        source = S3Source(args.uri, cfg=self.config)
        if getattr(args, "remote", False):
            source.remote()
        if getattr(args, "cached", False):
            source.cached()
        return source

    @staticmethod
    def _lookup(source: S3Source, name: str, version: str) -> PackageSpec:
        matches = source.specs().search(name, version)
        if not matches:
            raise MissingArchiveError(f"[aws-s3] {name} {version} not found in {source}")
        return matches[0]

    # ------------------------
    # source commands
    # ------------------------
    def cmd_specs(self, args: argparse.Namespace) -> int:
        source = self._source(args)
        idx = source.specs()
        table = Table(title=str(source))
        table.add_column("Name")
        table.add_column("Version")
        table.add_column("Platform")
        table.add_column("Installed")
        installed = source.installed_specs()
        for full_name in idx.full_names():
            spec = idx.get(full_name)
            table.add_row(spec.name, spec.version, spec.platform,
                          "yes" if full_name in installed else "")
        self.console.print(table)
        return 0

    def cmd_sync(self, args: argparse.Namespace) -> int:
        source = self._source(args)
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=self.console) as p:
            p.add_task(f"Syncing {source.paths.remote_uri}", total=None)
            source.sync.pull()
        self.console.print(Panel(f"Synced to: {source.paths.s3_gems_path}", title="sync", style="green"))
        return 0

    def cmd_install(self, args: argparse.Namespace) -> int:
        source = self._source(args)
        spec = self._lookup(source, args.name, args.version)
        dest = source.install(spec)
        self.console.print(Panel(f"Installed {spec.full_name} to {dest}", title="install", style="green"))
        return 0

    def cmd_cache(self, args: argparse.Namespace) -> int:
        source = self._source(args)
        spec = self._lookup(source, args.name, args.version)
        dest = source.cache(spec, args.path)
        self.console.print(Panel(f"Cached {spec.full_name} at {dest}", title="cache", style="green"))
        return 0

    def cmd_unlock(self, args: argparse.Namespace) -> int:
        source = self._source(args)
        source.unlock()
        self.console.print(f"[yellow]Removed {source.install_path}[/yellow]")
        return 0

    # ------------------------
    # publishing helpers
    # ------------------------
    def cmd_pack(self, args: argparse.Namespace) -> int:
        spec = PackageSpec(name=args.name, version=args.version,
                           platform=args.platform, summary=args.summary or "",
                           dependencies=args.dependency or [])
        out = _archive.create_archive(args.directory, spec, args.out)
        self.console.print(Panel(f"Created: {out}", title="pack", style="green"))
        return 0

    def cmd_index(self, args: argparse.Namespace) -> int:
        idx = _index.build_index(args.directory, args.out)
        self.console.print(Panel(f"Indexed {len(idx)} package(s) into {args.out}", title="index", style="green"))
        return 0


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="s3source", description="S3 bucket package source (rich-enabled)")
    ap.add_argument("--no-color", action="store_true", help="Disable color output")
    ap.add_argument("--quiet", action="store_true", help="Quiet mode; less output")
    ap.add_argument("--conf", help="Path to s3source.conf")
    ap.add_argument("--uri", help="Source uri, e.g. s3://bucket/prefix")
    sub = ap.add_subparsers(dest="command", required=True)

    p_specs = sub.add_parser("specs", aliases=["ls"], help="List the merged package index")
    p_specs.add_argument("--remote", action="store_true", help="Include the remote index")
    p_specs.add_argument("--cached", action="store_true", help="Include the app cache")

    sub.add_parser("sync", aliases=["sy"], help="Mirror the bucket prefix locally")

    p_install = sub.add_parser("install", aliases=["i"], help="Install a package")
    p_install.add_argument("name")
    p_install.add_argument("version")
    p_install.add_argument("--remote", action="store_true", help="Allow syncing from the bucket")
    p_install.add_argument("--cached", action="store_true")

    p_cache = sub.add_parser("cache", aliases=["cc"], help="Copy a package archive into the app cache")
    p_cache.add_argument("name")
    p_cache.add_argument("version")
    p_cache.add_argument("--path", help="App cache root (default from config)")
    p_cache.add_argument("--remote", action="store_true", help="Allow syncing from the bucket")

    sub.add_parser("unlock", help="Remove every installed package of the source")

    p_pack = sub.add_parser("pack", help="Build a package archive from a directory")
    p_pack.add_argument("directory")
    p_pack.add_argument("--name", required=True)
    p_pack.add_argument("--version", required=True)
    p_pack.add_argument("--platform", default="any")
    p_pack.add_argument("--summary")
    p_pack.add_argument("--dependency", action="append", help="e.g. 'bar >= 2.0' (repeatable)")
    p_pack.add_argument("--out", default="gems")

    p_index = sub.add_parser("index", help="Build a remote index blob from a directory of archives")
    p_index.add_argument("directory")
    p_index.add_argument("out")
    return ap


ALIASES = {"ls": "specs", "sy": "sync", "i": "install", "cc": "cache"}


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_argparser()
    args = parser.parse_args(argv)
    console = make_console(args.no_color, args.quiet)

    cfg = SourceConfig([args.conf]) if args.conf else default_config
    cli = CLI(console=console, cfg=cfg)

    cmd = ALIASES.get(args.command, args.command)
    if cmd in SOURCE_COMMANDS and not args.uri:
        parser.error(f"{cmd} requires --uri")

    try:
        return getattr(cli, "cmd_" + cmd)(args)
    except SourceError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return e.status_code


if __name__ == "__main__":
    raise SystemExit(main())
