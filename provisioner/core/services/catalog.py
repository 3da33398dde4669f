"""
Workstation catalog — every step the provisioner knows about.

Two profiles:
    basic    — Homebrew, apps, zsh + Oh My Zsh + Powerlevel10k, asdf with
               Ruby/Python/Node.js, Docker Desktop, Postman
    app-dev  — Xcode tooling, CocoaPods, Java, Android Studio + SDK,
               Flutter, Rosetta, Fastlane and mobile utilities

The full catalog is always declared as one registry; choosing profiles
(or individual steps) selects from it, which pulls in dependencies
from other profiles automatically.
"""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.packages.asdf import Asdf
from provisioner.adapters.packages.homebrew import Homebrew, default_brew_path
from provisioner.adapters.shell.command import CommandRunner
from provisioner.core.engine.registry import ActionRegistry
from provisioner.core.errors import ApplyFailure
from provisioner.core.models.config_block import ConfigBlock
from provisioner.core.models.settings import PROFILES, RuntimeSpec, Settings
from provisioner.core.models.step import Category, Step
from provisioner.core.services import probes
from provisioner.core.services.config_blocks import replace_line
from provisioner.core.services.templates import block_step, cask_step, formula_step, runtime_steps

logger = logging.getLogger(__name__)

OH_MY_ZSH_INSTALLER = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
POWERLEVEL10K_REPO = "https://github.com/romkatv/powerlevel10k.git"
DEFAULT_THEME_LINE = 'ZSH_THEME="robbyrussell"'
P10K_THEME_LINE = 'ZSH_THEME="powerlevel10k/powerlevel10k"'

XCODE_APP = "/Applications/Xcode.app"
XCODE_DEVELOPER_DIR = "/Applications/Xcode.app/Contents/Developer"
XCODE_APP_STORE_URL = "macappstores://itunes.apple.com/app/id497799835"

RUBY_PLUGIN_URL = "https://github.com/asdf-vm/asdf-ruby.git"
NODEJS_PLUGIN_URL = "https://github.com/asdf-vm/asdf-nodejs.git"
JAVA_PLUGIN_URL = "https://github.com/halcyon/asdf-java.git"
DEFAULT_JAVA_VERSION = "openjdk-18"


@dataclass
class Toolchain:
    """The adapters every catalog step is built on."""

    runner: CommandRunner
    brew: Homebrew
    asdf: Asdf
    machine: str


def build_toolchain(
    settings: Settings,
    runner: CommandRunner | None = None,
    machine: str | None = None,
) -> Toolchain:
    machine = machine or platform.machine()
    if runner is None:
        runner = CommandRunner(timeout=settings.command_timeout, stream=settings.stream_output)
    brew = Homebrew(runner, machine=machine)
    asdf = Asdf(runner, search_dirs=[str(Path(default_brew_path(machine)).parent)])
    return Toolchain(runner=runner, brew=brew, asdf=asdf, machine=machine)


def shell_path(path: str) -> str:
    """Render a ``~/`` path the way the startup file should reference it."""
    if path.startswith("~/"):
        return "$HOME/" + path[2:]
    return path


def _zsh_custom() -> Path:
    custom = os.environ.get("ZSH_CUSTOM")
    if custom:
        return Path(custom).expanduser()
    return Path("~/.oh-my-zsh/custom").expanduser()


# ── basic ───────────────────────────────────────────────────────


def basic_steps(settings: Settings, tools: Toolchain) -> list[Step]:
    runner, brew, asdf = tools.runner, tools.brew, tools.asdf
    rc = settings.shell_rc
    updatable = settings.update_existing
    oh_my_zsh_dir = Path("~/.oh-my-zsh").expanduser()
    p10k_dir = _zsh_custom() / "themes" / "powerlevel10k"

    def set_theme() -> None:
        if not replace_line(settings.rc_path, DEFAULT_THEME_LINE, P10K_THEME_LINE):
            raise ApplyFailure(
                f"Could not find the default ZSH_THEME setting in {settings.rc_path}; "
                f"set {P10K_THEME_LINE} manually"
            )

    def set_login_shell() -> None:
        zsh = runner.which("zsh")
        if zsh is None:
            raise ApplyFailure("zsh is not on PATH")
        runner.check(["chsh", "-s", zsh])

    steps = [
        Step(
            id="homebrew",
            description="Homebrew package manager",
            category=Category.PACKAGE_MANAGER,
            critical=True,
            probe=probes.tool_installed(brew, updatable=updatable),
            apply=brew.bootstrap,
            update=brew.update,
        ),
        cask_step("iterm2", brew, "iterm2", "iTerm2", Category.SHELL, updatable=updatable),
        cask_step("vscode", brew, "visual-studio-code", "Visual Studio Code",
                  Category.EDITOR, updatable=updatable),
        cask_step("google-chrome", brew, "google-chrome", "Google Chrome",
                  Category.APPLICATION, updatable=updatable),
        cask_step("slack", brew, "slack", "Slack", Category.APPLICATION, updatable=updatable),
        Step(
            id="zsh",
            description="zsh",
            category=Category.SHELL,
            depends_on={"homebrew"},
            probe=probes.command_available(runner, "zsh"),
            apply=lambda: brew.install("zsh"),
        ),
        Step(
            id="oh-my-zsh",
            description="Oh My Zsh",
            category=Category.SHELL,
            depends_on={"zsh"},
            probe=probes.directory_exists(oh_my_zsh_dir, updatable=updatable),
            apply=lambda: runner.check(
                f'sh -c "$(curl -fsSL {OH_MY_ZSH_INSTALLER})" "" --unattended'
            ),
            update=lambda: runner.check(["git", "-C", str(oh_my_zsh_dir), "pull"]),
        ),
        Step(
            id="powerlevel10k",
            description="Powerlevel10k theme",
            category=Category.SHELL,
            depends_on={"oh-my-zsh"},
            probe=probes.directory_exists(p10k_dir, updatable=updatable),
            apply=lambda: runner.check(
                ["git", "clone", "--depth=1", POWERLEVEL10K_REPO, str(p10k_dir)]
            ),
            update=lambda: runner.check(["git", "-C", str(p10k_dir), "pull"]),
        ),
        Step(
            id="zsh-theme",
            description="Powerlevel10k as the default zsh theme",
            category=Category.SHELL,
            depends_on={"oh-my-zsh", "powerlevel10k"},
            probe=probes.file_has_line(rc, P10K_THEME_LINE),
            apply=set_theme,
        ),
        Step(
            id="default-shell",
            description="zsh as the login shell",
            category=Category.SHELL,
            depends_on={"zsh"},
            probe=probes.login_shell_is(runner, "zsh"),
            apply=set_login_shell,
        ),
        block_step(
            "vscode-path",
            ConfigBlock(
                marker="# Add Visual Studio Code (code)",
                content='export PATH="$PATH:/Applications/Visual Studio Code.app/Contents/Resources/app/bin"',
                target_file=rc,
            ),
            "VS Code 'code' command on PATH",
            Category.EDITOR,
            depends_on={"vscode"},
            replace=settings.replace_conflicts,
        ),
        formula_step("asdf", brew, "asdf", "asdf version manager",
                     Category.PACKAGE_MANAGER, updatable=updatable, critical=True),
        block_step(
            "asdf-init",
            ConfigBlock(
                marker="# asdf version manager",
                content='. "$(brew --prefix asdf)/libexec/asdf.sh"',
                target_file=rc,
            ),
            "asdf shell integration",
            Category.LANGUAGE_RUNTIME,
            depends_on={"asdf"},
            replace=settings.replace_conflicts,
        ),
        block_step(
            "asdf-nodejs-strategy",
            ConfigBlock(
                marker="# Node.js legacy file dynamic strategy",
                content="export ASDF_NODEJS_LEGACY_FILE_DYNAMIC_STRATEGY=latest_installed",
                target_file=rc,
            ),
            "Node.js legacy version file strategy",
            Category.LANGUAGE_RUNTIME,
            depends_on={"asdf"},
            replace=settings.replace_conflicts,
        ),
    ]

    for runtime in (
        RuntimeSpec(name="ruby", version=settings.runtime_version("ruby"), source_url=RUBY_PLUGIN_URL),
        RuntimeSpec(name="python", version=settings.runtime_version("python")),
        RuntimeSpec(name="nodejs", version=settings.runtime_version("nodejs"), source_url=NODEJS_PLUGIN_URL),
    ):
        steps.extend(runtime_steps(runtime, asdf, updatable=updatable))

    steps.extend([
        cask_step("docker", brew, "docker", "Docker Desktop", Category.CONTAINER,
                  updatable=updatable, app_bundle="/Applications/Docker.app"),
        cask_step("postman", brew, "postman", "Postman", Category.CONTAINER,
                  updatable=updatable, app_bundle="/Applications/Postman.app"),
        Step(
            id="docker-daemon",
            description="Docker Desktop running",
            category=Category.CONTAINER,
            depends_on={"docker"},
            probe=probes.command_succeeds(runner, ["docker", "info"]),
            apply=lambda: runner.check(["open", "-a", "Docker"]),
        ),
    ])
    return steps


# ── app-dev ─────────────────────────────────────────────────────


def app_dev_steps(settings: Settings, tools: Toolchain) -> list[Step]:
    runner, brew, asdf = tools.runner, tools.brew, tools.asdf
    rc = settings.shell_rc
    updatable = settings.update_existing
    replace = settings.replace_conflicts
    sdk = settings.android_sdk
    sdk_path = settings.android_sdk_path
    sdk_env = shell_path(sdk)

    def request_xcode() -> None:
        runner.run(["open", XCODE_APP_STORE_URL])
        raise ApplyFailure(
            "Xcode is required for iOS development; install it from the App Store "
            "(opened for you), then run provision again"
        )

    steps = [
        Step(
            id="xcode-cli-tools",
            description="Xcode Command Line Tools",
            category=Category.MOBILE_TOOLING,
            probe=probes.command_succeeds(runner, ["xcode-select", "-p"]),
            apply=lambda: runner.check(["xcode-select", "--install"]),
        ),
        Step(
            id="xcode",
            description="Xcode",
            category=Category.MOBILE_TOOLING,
            probe=probes.directory_exists(XCODE_APP),
            apply=request_xcode,
        ),
        Step(
            id="xcode-select",
            description="Xcode as the active developer directory",
            category=Category.MOBILE_TOOLING,
            depends_on={"xcode", "xcode-cli-tools"},
            probe=probes.command_succeeds(
                runner, ["xcode-select", "-p"], expect_output=XCODE_DEVELOPER_DIR
            ),
            apply=lambda: runner.check(["sudo", "xcode-select", "-s", XCODE_DEVELOPER_DIR]),
        ),
        Step(
            id="xcode-license",
            description="Xcode license accepted",
            category=Category.MOBILE_TOOLING,
            depends_on={"xcode-select"},
            probe=probes.command_succeeds(runner, ["xcodebuild", "-license", "check"]),
            apply=lambda: runner.check(["sudo", "xcodebuild", "-license", "accept"]),
        ),
        formula_step("cocoapods", brew, "cocoapods", "CocoaPods",
                     Category.MOBILE_TOOLING, updatable=updatable),
    ]

    java = RuntimeSpec(
        name="java",
        version=settings.runtime_version("java", DEFAULT_JAVA_VERSION),
        source_url=JAVA_PLUGIN_URL,
    )
    steps.extend(runtime_steps(java, asdf, updatable=updatable))
    steps.extend([
        block_step(
            "java-home",
            ConfigBlock(
                marker="# Java Home for asdf-java",
                content='. "$HOME/.asdf/plugins/java/set-java-home.zsh"',
                target_file=rc,
            ),
            "JAVA_HOME from asdf-java",
            Category.LANGUAGE_RUNTIME,
            depends_on={"java"},
            replace=replace,
        ),
        block_step(
            "java-macos-integration",
            ConfigBlock(
                marker="# Optional: macOS specific Java integration (for /usr/libexec/java_home)",
                content="export java_macos_integration_enable=yes",
                target_file=rc,
            ),
            "macOS java_home integration",
            Category.LANGUAGE_RUNTIME,
            depends_on={"java"},
            replace=replace,
        ),
        cask_step("android-studio", brew, "android-studio", "Android Studio",
                  Category.MOBILE_TOOLING, updatable=updatable),
        block_step(
            "android-sdk",
            ConfigBlock(
                marker="# Android SDK",
                content="\n".join([
                    f'export ANDROID_HOME="{sdk_env}"',
                    f'export ANDROID_SDK_ROOT="{sdk_env}"',
                    'export PATH="$PATH:$ANDROID_HOME/emulator"',
                    'export PATH="$PATH:$ANDROID_HOME/tools"',
                    'export PATH="$PATH:$ANDROID_HOME/tools/bin"',
                    'export PATH="$PATH:$ANDROID_HOME/platform-tools"',
                ]),
                target_file=rc,
            ),
            "Android SDK environment variables",
            Category.MOBILE_TOOLING,
            depends_on={"android-studio"},
            replace=replace,
        ),
        Step(
            id="android-sdk-dir",
            description=f"Android SDK directory ({sdk})",
            category=Category.MOBILE_TOOLING,
            probe=probes.directory_exists(sdk_path),
            apply=lambda: sdk_path.mkdir(parents=True, exist_ok=True),
        ),
    ])

    flutter = RuntimeSpec(name="flutter", version=settings.runtime_version("flutter"))
    steps.extend(runtime_steps(flutter, asdf, category=Category.MOBILE_TOOLING, updatable=updatable))
    steps.append(
        block_step(
            "flutter-root",
            ConfigBlock(
                marker="# Flutter environment for asdf-flutter",
                content='export FLUTTER_ROOT="$(asdf where flutter)"',
                target_file=rc,
            ),
            "FLUTTER_ROOT for IDEs",
            Category.MOBILE_TOOLING,
            depends_on={"flutter"},
            replace=replace,
        )
    )

    if tools.machine == "arm64":
        steps.append(
            Step(
                id="rosetta",
                description="Rosetta 2 (Apple Silicon)",
                category=Category.MOBILE_TOOLING,
                probe=probes.command_succeeds(runner, ["/usr/bin/pgrep", "-q", "oahd"]),
                apply=lambda: runner.check(
                    ["softwareupdate", "--install-rosetta", "--agree-to-license"]
                ),
            )
        )

    steps.extend([
        formula_step("fastlane", brew, "fastlane", "Fastlane",
                     Category.MOBILE_TOOLING, updatable=updatable),
        formula_step("scrcpy", brew, "scrcpy", "scrcpy (Android screen mirroring)",
                     Category.MOBILE_TOOLING, updatable=updatable),
        cask_step("figma", brew, "figma", "Figma", Category.APPLICATION, updatable=updatable),
        cask_step("android-file-transfer", brew, "android-file-transfer",
                  "Android File Transfer", Category.MOBILE_TOOLING, updatable=updatable),
        Step(
            id="flutter-android-sdk",
            description="Flutter pointed at the Android SDK",
            category=Category.MOBILE_TOOLING,
            depends_on={"flutter", "android-sdk-dir"},
            probe=probes.command_succeeds(
                runner, ["flutter", "config", "--list"], expect_output=f"android-sdk: {sdk_path}"
            ),
            apply=lambda: runner.check(["flutter", "config", f"--android-sdk={sdk_path}"]),
        ),
    ])
    return steps


PROFILE_BUILDERS = {
    "basic": basic_steps,
    "app-dev": app_dev_steps,
}


def profile_step_ids(settings: Settings, tools: Toolchain) -> dict[str, list[str]]:
    """Step ids declared by each profile."""
    return {
        name: [s.id for s in PROFILE_BUILDERS[name](settings, tools)] for name in PROFILES
    }


def build_catalog(settings: Settings, tools: Toolchain) -> ActionRegistry:
    """The full catalog, every profile, as one validated registry."""
    steps: list[Step] = []
    for name in PROFILES:
        steps.extend(PROFILE_BUILDERS[name](settings, tools))
    return ActionRegistry(steps)


def build_registry(
    settings: Settings,
    runner: CommandRunner | None = None,
    machine: str | None = None,
    only: list[str] | None = None,
) -> ActionRegistry:
    """Registry for a run: selected profiles or steps, minus skipped ones.

    Args:
        settings: Operator settings (profiles, skip, critical, ...).
        runner: Command runner override (tests use a mock).
        machine: Architecture override (``arm64`` / ``x86_64``).
        only: Explicit step ids; overrides the profile selection.

    Raises:
        InvalidRegistry: Unknown step ids in ``only``, or an invalid
            catalog. Unknown ids in ``skip`` and ``critical`` are logged
            and ignored.
    """
    tools = build_toolchain(settings, runner=runner, machine=machine)
    catalog = build_catalog(settings, tools)

    if only:
        wanted = list(only)
    else:
        by_profile = profile_step_ids(settings, tools)
        wanted = [sid for name in settings.profiles for sid in by_profile[name]]
    registry = catalog.select(wanted)

    skip = [sid for sid in settings.skip if sid in registry]
    unknown_skip = [sid for sid in settings.skip if sid not in catalog]
    if unknown_skip:
        logger.warning("Ignoring unknown step(s) in skip: %s", ", ".join(unknown_skip))
    if skip:
        registry = registry.without(skip)

    critical = [sid for sid in settings.critical if sid in registry]
    unknown_critical = [sid for sid in settings.critical if sid not in catalog]
    if unknown_critical:
        logger.warning("Ignoring unknown step(s) in critical: %s", ", ".join(unknown_critical))
    if critical:
        registry = registry.with_critical(critical)

    logger.info("Registry ready: %d step(s)", len(registry))
    return registry
