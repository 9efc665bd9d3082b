"""
Command-line interface for fractal generation.

This module provides the CLI for rendering fractal images and inspecting the
available fractal types, palettes and configuration files.
"""

import click
import sys
import json
from pathlib import Path
import logging
import time

from .. import __version__
from ..api import FractalRenderer, RenderConfig
from ..acceleration.parallel import BACKENDS, get_optimal_process_count
from ..core.fractal_types import FractalRegistry, FractalVariation
from ..rendering.coloring import PALETTES_DIRECTORY, resolve_palette

logger = logging.getLogger(__name__)

# CLI option name -> RenderConfig field
OPTION_FIELDS = {
    'fractal': 'fractal',
    'width': 'width',
    'height': 'height',
    'xcenter': 'x_center',
    'ycenter': 'y_center',
    'zoom': 'zoom',
    'iterations': 'max_iterations',
    'radius': 'escape_radius',
    'creal': 'c_real',
    'cimag': 'c_imag',
    'light': 'light',
    'depth': 'depth',
    'palette': 'palette',
    'mix': 'mix_palette',
    'output': 'output_file',
    'parallel': 'parallel',
    'backend': 'backend',
    'workers': 'num_workers',
    'split_rows': 'split_rows',
    'rows_per_tile': 'rows_per_tile',
    'strict_newton': 'newton_strict_root_check',
    'metadata': 'save_metadata',
    'open_file': 'open_when_done',
}


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    fractalgen - Mandelbrot, Julia and Newton fractal image generator.

    Renders a fractal over a viewport of the complex plane into a BMP, PNG
    or TIFF image, optionally spreading the work over several workers.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"fractalgen v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if ctx.invoked_subcommand is None and not version:
        click.echo(ctx.get_help())


@main.command()
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON configuration file; command-line options override it')
@click.option('--fractal', '-f', type=click.Choice([v.value for v in FractalVariation], case_sensitive=False),
              help='Fractal variation')
@click.option('--width', '-w', type=int, help='Image width in pixels')
@click.option('--height', '-h', type=int, help='Image height in pixels')
@click.option('--xcenter', type=float, help='Real coordinate of the image center')
@click.option('--ycenter', type=float, help='Imaginary coordinate of the image center')
@click.option('--zoom', type=float, help='Zoom factor (the plane is 8/zoom units wide)')
@click.option('--iterations', '-i', type=int, help='Maximum iterations')
@click.option('--radius', type=float, help='Escape radius')
@click.option('--creal', type=float, help='Real part of the Julia constant')
@click.option('--cimag', type=float, help='Imaginary part of the Julia constant')
@click.option('--light', type=float, help='Palette lightening factor between 0 and 1')
@click.option('--depth', type=click.Choice(['1', '3', '4']), help='Bytes per pixel (1 gray, 3 RGB, 4 RGBA)')
@click.option('--palette', '-p', help=f'Palette file (path or name inside ./{PALETTES_DIRECTORY}) '
                                      'or matplotlib colormap name')
@click.option('--mix', help='Second palette averaged with the first one')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output image file (.bmp, .png, .tif)')
@click.option('--parallel/--sequential', default=None, help='Render in parallel or sequentially')
@click.option('--backend', type=click.Choice(BACKENDS), help='Parallel backend')
@click.option('--workers', type=int, help='Number of parallel workers')
@click.option('--split-rows/--no-split-rows', default=None, help='Also split columns into row chunks')
@click.option('--rows-per-tile', type=int, help='Rows per chunk when splitting rows')
@click.option('--strict-newton/--legacy-newton', default=None,
              help='Newton stops near any root, or only near the first two roots')
@click.option('--metadata/--no-metadata', default=None, help='Save render metadata')
@click.option('--open', 'open_file', is_flag=True, default=None, help='Open the image when done')
@click.pass_context
def render(ctx, config_file, **kwargs):
    """Render a single fractal image."""
    try:
        render_config = RenderConfig.from_file(config_file) if config_file else RenderConfig()

        # Apply command-line overrides
        for option, value in kwargs.items():
            if value is None:
                continue
            if option == 'depth':
                value = int(value)
            elif option == 'fractal':
                value = value.lower()
            setattr(render_config, OPTION_FIELDS[option], value)

        renderer = FractalRenderer(render_config)

        click.echo(f"Rendering {render_config.fractal} fractal...")
        start_time = time.time()

        output = renderer.render_to_file()

        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@main.command()
@click.pass_context
def list_fractals(ctx):
    """List available fractal types."""
    fractals = FractalRegistry.list_fractals()

    click.echo("Available fractal types:")
    for name, description in fractals.items():
        click.echo(f"  {name}")
        if ctx.obj.get('verbose'):
            click.echo(f"    {description}")


@main.command()
def list_palettes():
    """List palette files and a selection of matplotlib colormaps."""
    palette_dir = Path.cwd() / PALETTES_DIRECTORY
    files = sorted(p.name for p in palette_dir.iterdir() if p.is_file()) if palette_dir.is_dir() else []

    click.echo(f"Palette files in {palette_dir}:")
    for name in files:
        click.echo(f"  {name}")
    if not files:
        click.echo("  (none)")

    click.echo("\nMatplotlib colormaps (examples):")
    for name in ('hsv', 'viridis', 'plasma', 'inferno', 'magma', 'twilight', 'jet', 'gray'):
        click.echo(f"  {name}")


@main.command()
@click.argument('config_file', type=click.Path(exists=True, dir_okay=False))
def validate_config(config_file):
    """Validate a JSON configuration file."""
    try:
        config = RenderConfig.from_file(config_file)
        config.validate()
        resolve_palette(config.palette)
        if config.mix_palette:
            resolve_palette(config.mix_palette)
    except (ValueError, TypeError, OSError, json.JSONDecodeError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration is valid: {config.fractal} {config.width}x{config.height}")
    if config.parallel:
        workers = config.num_workers or get_optimal_process_count()
        click.echo(f"  Parallel: {workers} {config.backend} workers")
    else:
        click.echo("  Parallel: disabled")


if __name__ == '__main__':
    main()
