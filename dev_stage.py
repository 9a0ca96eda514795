#!/usr/bin/env python3
"""
Development Stage Launcher

Loads a project file and runs its actors' programs, either in a pygame
window (actors painted as rectangles with their say message) or headless.

Usage:
    # Open the demo project in a window
    python dev_stage.py projects/demo.yaml

    # Run headless for at most 200 ticks and print the final actor states
    python dev_stage.py projects/demo.yaml --headless --ticks 200

    # With custom resolution
    python dev_stage.py projects/demo.yaml --resolution 960x720

    # Record scheduler ticks and collision events to runs/<name>.jsonl
    python dev_stage.py projects/demo.yaml --headless --record runs

Controls (window mode):
    SPACE  start the run (green flag)
    S      stop the run
    ESC    quit
"""

import argparse
import os
import sys

import pygame

# Ensure project root is on path
_project_root = os.path.dirname(os.path.abspath(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from blockstage.logging import get_logger
from blockstage.project import ProjectLoadError, load_project
from blockstage.runtime.host import ManualFrameHost
from blockstage.session import StageSession

log = get_logger('dev_stage')

BACKGROUND = (245, 245, 245)
STAGE_BORDER = (180, 180, 180)
TEXT_COLOR = (30, 30, 30)
SELECTED_OUTLINE = (255, 170, 0)
KIND_COLORS = {
    'cat': (255, 140, 26),
    'dog': (76, 151, 255),
    'cat2': (153, 102, 255),
}
DEFAULT_COLOR = (120, 120, 120)


def print_actors(session: StageSession) -> None:
    """Print one line per actor with its position, heading and scale."""
    for actor in session.state.actors:
        message = f' says "{actor.displayed_message}"' if actor.displayed_message else ''
        print(f"  {actor.id:<10} x={actor.x:8.2f} y={actor.y:8.2f} "
              f"heading={actor.heading:6.1f} scale={actor.scale:6.1f}{message}")


def run_headless(session: StageSession, ticks: int) -> int:
    """Start the run and pump frames until it stops or `ticks` ran."""
    session.start()
    frames = session.run(max_ticks=ticks)

    print(f"Ran {frames} tick(s), running={session.running}")
    print_actors(session)
    return 0


def _to_screen(x: float, y: float, stage_rect: pygame.Rect, zoom: float):
    """Stage coordinates (origin at center, y up) to screen pixels."""
    return (stage_rect.centerx + x * zoom, stage_rect.centery - y * zoom)


def draw_stage(screen, font, session: StageSession, stage_rect: pygame.Rect, zoom: float) -> None:
    screen.fill(BACKGROUND)
    pygame.draw.rect(screen, STAGE_BORDER, stage_rect, 1)

    for actor in session.state.actors:
        factor = actor.scale / 100.0 * zoom
        w = max(1, int(actor.width * factor))
        h = max(1, int(actor.height * factor))
        cx, cy = _to_screen(actor.x, actor.y, stage_rect, zoom)
        rect = pygame.Rect(0, 0, w, h)
        rect.center = (int(cx), int(cy))

        pygame.draw.rect(screen, KIND_COLORS.get(actor.kind, DEFAULT_COLOR), rect)
        if actor.id == session.state.selected_actor_id:
            pygame.draw.rect(screen, SELECTED_OUTLINE, rect, 2)

        label = font.render(actor.id, True, TEXT_COLOR)
        screen.blit(label, (rect.left, rect.bottom + 2))

        if actor.displayed_message:
            bubble = font.render(actor.displayed_message, True, TEXT_COLOR)
            screen.blit(bubble, (rect.right + 4, rect.top - bubble.get_height()))

    status = "RUNNING" if session.running else "STOPPED  (SPACE to start)"
    screen.blit(font.render(status, True, TEXT_COLOR), (8, 8))


def run_window(session: StageSession, width: int, height: int, project_name: str) -> int:
    pygame.init()
    screen = pygame.display.set_mode((width, height))
    pygame.display.set_caption(f"{project_name} - Blockstage")
    font = pygame.font.Font(None, 22)

    config = session.config
    zoom = min(width / config.width, height / config.height)
    stage_rect = pygame.Rect(0, 0, int(config.width * zoom), int(config.height * zoom))
    stage_rect.center = (width // 2, height // 2)

    print("Controls:")
    print("  - SPACE to start")
    print("  - S to stop")
    print("  - ESC to quit")
    print()
    print("=" * 60)

    clock = pygame.time.Clock()
    running = True

    while running:
        clock.tick(config.fps)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    session.start()
                elif event.key == pygame.K_s:
                    session.stop()

        # One scheduler tick per frame
        session.tick()

        draw_stage(screen, font, session, stage_rect, zoom)
        pygame.display.flip()

    pygame.quit()
    print_actors(session)
    return 0


def main():
    """Main entry point for the development stage launcher."""
    parser = argparse.ArgumentParser(
        description='Development Stage Launcher - run a block project',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python dev_stage.py projects/demo.yaml
  python dev_stage.py projects/demo.yaml --headless --ticks 200
  python dev_stage.py projects/demo.yaml --headless --record runs
        """
    )

    parser.add_argument('project', help='Project YAML file')

    parser.add_argument(
        '--headless',
        action='store_true',
        help='Run without a window and print the final actor states'
    )

    parser.add_argument(
        '--ticks', '-t',
        type=int,
        default=1000,
        help='Maximum ticks to run in headless mode (default: 1000)'
    )

    parser.add_argument(
        '--resolution', '-r',
        type=str,
        default='960x720',
        help='Window resolution as WIDTHxHEIGHT (default: 960x720)'
    )

    parser.add_argument(
        '--record',
        metavar='DIR',
        help='Write scheduler and bus records of the run to a JSONL file in DIR'
    )

    args = parser.parse_args()

    try:
        project = load_project(args.project)
    except ProjectLoadError as e:
        print(f"ERROR: {e}")
        return 1

    session = StageSession(
        config=project.config,
        initial=project.state,
        host=ManualFrameHost(),
        record_dir=args.record,
    )

    print("=" * 60)
    print(f"Blockstage: {project.name}")
    print("=" * 60)
    print(f"Actors: {', '.join(session.state.actor_ids) or '(none)'}")
    print()

    try:
        if args.headless:
            return run_headless(session, args.ticks)

        try:
            width, height = args.resolution.split('x')
            width, height = int(width), int(height)
        except ValueError:
            print(f"Invalid resolution format: {args.resolution}")
            print("Expected format: WIDTHxHEIGHT (e.g., 960x720)")
            return 1

        return run_window(session, width, height, project.name)
    finally:
        session.close()
        if session.recorder is not None:
            print(f"Recording: {session.recorder.path}")


if __name__ == "__main__":
    sys.exit(main())
