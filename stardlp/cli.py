#!/usr/bin/env python3
import argparse

import rich.table

from stardlp import __version__
from stardlp import github_client
from stardlp import star_downloader
from stardlp import star_log
from stardlp import star_settings
from stardlp import worker_pool


#============================================
def add_directory_options(parser: argparse.ArgumentParser) -> None:
	"""
	Add token and directory override options shared by download and config.
	"""
	parser.add_argument("--token", default=None, help="GitHub API token.")
	parser.add_argument("--output_dir", default=None, help="Output directory for stars.")
	parser.add_argument("--json_dir", default=None, help="Directory for JSON files.")
	parser.add_argument("--markdown_dir", default=None, help="Directory for Markdown files.")


#============================================
def add_pool_options(parser: argparse.ArgumentParser) -> None:
	"""
	Add worker pool sizing and retry options.
	"""
	parser.add_argument(
		"--threads",
		type=int,
		default=worker_pool.DEFAULT_THREAD_COUNT,
		help="Number of download threads (default: 16).",
	)
	parser.add_argument(
		"--retry_count",
		type=int,
		default=worker_pool.DEFAULT_RETRY_COUNT,
		help="Number of attempts for failed downloads (default: 5).",
	)
	parser.add_argument(
		"--retry_delay",
		type=float,
		default=worker_pool.DEFAULT_RETRY_DELAY,
		help="Delay in seconds between retry attempts (default: 1).",
	)


#============================================
def build_parser() -> argparse.ArgumentParser:
	"""
	Build the star-dlp argument parser.
	"""
	parser = argparse.ArgumentParser(
		prog="star-dlp",
		description="Download GitHub stars as JSON snapshots and Markdown documents.",
	)
	parser.add_argument(
		"--config",
		default=star_settings.DEFAULT_CONFIG_FILE,
		help="YAML settings path (default: ~/.star-dlp/config.yaml).",
	)
	subparsers = parser.add_subparsers(dest="command", required=True)

	download_parser = subparsers.add_parser("download", help="Download GitHub stars for a user.")
	download_parser.add_argument("username", help="GitHub username whose stars are fetched.")
	add_directory_options(download_parser)
	add_pool_options(download_parser)
	download_parser.add_argument(
		"--skip_readme",
		action="store_true",
		help="Skip downloading README files.",
	)

	readme_parser = subparsers.add_parser(
		"download_readme",
		help="Download READMEs for all repositories from JSON files.",
	)
	add_pool_options(readme_parser)
	readme_parser.add_argument(
		"--force",
		action="store_true",
		help="Force download even if README was already downloaded.",
	)

	config_parser = subparsers.add_parser("config", help="Configure star-dlp.")
	add_directory_options(config_parser)

	subparsers.add_parser("version", help="Show version.")
	return parser


#============================================
def settings_with_overrides(args: argparse.Namespace) -> tuple[dict, str]:
	"""
	Load settings, apply command-line overrides, save, and create directories.
	"""
	settings, settings_path = star_settings.load_settings(args.config)
	settings = star_settings.apply_overrides(
		settings,
		github_token=args.token,
		output_dir=args.output_dir,
		json_dir=args.json_dir,
		markdown_dir=args.markdown_dir,
	)
	star_settings.save_settings(settings, settings_path)
	star_settings.ensure_directories(settings)
	return settings, settings_path


#============================================
def build_client(settings: dict) -> github_client.GitHubClient:
	"""
	Create the GitHub client, logging which auth mode is in use.
	"""
	token = star_settings.resolve_github_token(settings)
	if token:
		star_log.log_step("Using authenticated GitHub API mode.")
	else:
		star_log.log_step("Using unauthenticated GitHub API mode (lower rate limit).")
	return github_client.GitHubClient(token, log_fn=star_log.log_step)


#============================================
def render_summary_table(title: str, rows: list[tuple[str, str]]) -> None:
	"""
	Render a final two-column summary table.
	"""
	table = rich.table.Table(title=title)
	table.add_column("Metric", style="bold cyan")
	table.add_column("Value", justify="right")
	for label, value in rows:
		table.add_row(label, value)
	star_log.RICH_CONSOLE.print(table)


#============================================
def log_api_usage(client: github_client.GitHubClient) -> None:
	usage = client.api_usage_snapshot()
	star_log.log_step(f"GitHub API usage: calls={usage.get('api_call_count', 0)}")


#============================================
def run_download(args: argparse.Namespace) -> int:
	settings, settings_path = settings_with_overrides(args)
	star_log.log_step(f"Using settings file: {settings_path}")
	client = build_client(settings)
	report = star_downloader.download_stars(
		client,
		settings,
		args.username,
		thread_count=args.threads,
		skip_readme=args.skip_readme,
		retry_count=args.retry_count,
		retry_delay=args.retry_delay,
		log_fn=star_log.log_step,
	)
	summary = report.summary
	if report.found == 0:
		star_log.log_step("All repositories are up to date.")
	else:
		star_log.log_step("Download completed!")
	render_summary_table(
		"Download Summary",
		[
			("New repositories", str(report.found)),
			("Completed", f"{summary.completed}/{summary.total}"),
			("Succeeded", str(summary.succeeded)),
			("Failed", str(summary.failed)),
			("Watermark", report.watermark or "-"),
			("Watermark saved", "yes" if report.watermark_saved else "no"),
		],
	)
	log_api_usage(client)
	return 0


#============================================
def run_download_readme(args: argparse.Namespace) -> int:
	settings, settings_path = star_settings.load_settings(args.config)
	star_settings.ensure_directories(settings)
	star_log.log_step(f"Using settings file: {settings_path}")
	client = build_client(settings)
	result = star_downloader.download_readmes(
		client,
		settings,
		force=args.force,
		thread_count=args.threads,
		retry_count=args.retry_count,
		retry_delay=args.retry_delay,
		log_fn=star_log.log_step,
	)
	star_log.log_step("README download completed!")
	render_summary_table(
		"README Summary",
		[
			("Successfully downloaded", str(result["success"])),
			("Failed or not found", str(result["failed"])),
			("Already downloaded", str(result["skipped"])),
		],
	)
	log_api_usage(client)
	return 0


#============================================
def run_config(args: argparse.Namespace) -> int:
	settings, settings_path = settings_with_overrides(args)
	star_log.log_step(f"Configuration saved successfully to {settings_path}")
	token_text = star_settings.mask_token(star_settings.get_setting_str(settings, "github_token", ""))
	print(f"GitHub Token: {token_text}")
	print(f"Output Directory: {settings['output_dir']}")
	print(f"JSON Directory: {settings['json_dir']}")
	print(f"Markdown Directory: {settings['markdown_dir']}")
	return 0


#============================================
def run_version(args: argparse.Namespace) -> int:
	print(f"star-dlp version {__version__}")
	return 0


COMMANDS = {
	"download": run_download,
	"download_readme": run_download_readme,
	"config": run_config,
	"version": run_version,
}


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Parse arguments and dispatch one subcommand.
	"""
	parser = build_parser()
	args = parser.parse_args(argv)
	return COMMANDS[args.command](args)


if __name__ == "__main__":
	raise SystemExit(main())
