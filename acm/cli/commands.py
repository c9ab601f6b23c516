"""CLI Commands"""

import getpass
import os
import sys
from dataclasses import replace

from acm.config import (
    Config, load_config, save_config, config_exists, get_config_path,
    default_messages, default_response_format, DEFAULT_CUSTOM_MESSAGE, RAW_CUSTOM_MESSAGE,
)
from acm.errors import ConfigError
from acm.output import bold, dim, info, print_success, print_warning

ENV_OVERRIDES = ('ACM_BASE_URL', 'ACM_API_KEY', 'ACM_MODEL')


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"


def display_config() -> int:
    """Display current configuration."""
    path = get_config_path()
    print(f"\n{bold('Current Configuration')}\n")

    if not config_exists():
        print(f"  {dim('No configuration at')} {path}")
        print(f"\n  {dim('Run')} acm --setup {dim('to configure')}\n")
        return 1

    config = load_config()
    print(f"  {dim('Loaded from:')} {path}")

    overrides = [name for name in ENV_OVERRIDES if os.environ.get(name)]
    if overrides:
        print(f"  {dim('Environment overrides:')}")
        for name in overrides:
            value = os.environ[name]
            print(f"    {name}={_mask(value) if name == 'ACM_API_KEY' else value}")

    params = config.params
    print()
    print(f"  {bold('Settings:')}")
    print(f"    base_url:        {info(config.base_url)}")
    print(f"    api_key:         {info(_mask(config.api_key))}")
    print(f"    model:           {info(params.model)}")
    print(f"    custom_message:  {info(repr(config.custom_message))}")
    print(f"    structured:      {info(str(config.structured).lower())}")
    print(f"    max_tokens:      {info(str(params.max_tokens))}")
    print(f"    temperature:     {info(str(params.temperature))}")
    print(f"    top_p:           {info(str(params.top_p))}")
    print(f"    n:               {info(str(params.n))}")
    print(f"    timeout:         {info(f'{config.timeout}s')}")
    print(f"\n  {dim('Run')} acm --setup {dim('to change')}\n")
    return 0


def _ask(label: str, default: str) -> str:
    answer = input(f"{label} [{default}]: ").strip()
    return answer or default


def _ask_int(label: str, default: int) -> int:
    while True:
        answer = input(f"{label} [{default}]: ").strip()
        if not answer:
            return default
        if answer.isdigit() and int(answer) > 0:
            return int(answer)
        print("Enter a positive number")


def prompt_for_config(current: Config) -> Config:
    """Ask for each setting, offering the current value as default."""
    print(f"{bold('Setup Wizard')}\n")

    base_url = _ask("API base URL", current.base_url)

    while True:
        hint = " (Enter to keep current)" if current.api_key else ""
        api_key = getpass.getpass(f"API key{hint}: ").strip() or current.api_key
        if api_key:
            break
        print("API key is required")

    model = _ask("Model name", current.params.model)
    max_tokens = _ask_int("Max tokens of generated commit messages", current.params.max_tokens)
    timeout = _ask_int("Request timeout (in seconds)", current.timeout)

    print("\nAsk the model for JSON with 'type' and 'description' fields?")
    print(dim("  Needs an endpoint that supports response_format. Otherwise the reply is used as-is."))
    json_mode = input("Use JSON mode? [Y/n]: ").strip().lower() != 'n'

    default_template = DEFAULT_CUSTOM_MESSAGE if json_mode else RAW_CUSTOM_MESSAGE
    if current.structured == json_mode:
        default_template = current.custom_message
    custom_message = _ask("Commit message template", default_template)

    if current.structured == json_mode:
        messages, response_format = current.params.messages, current.params.response_format
    else:
        messages = default_messages(json_mode)
        response_format = default_response_format() if json_mode else None

    params = replace(
        current.params,
        model=model,
        max_tokens=max_tokens,
        messages=messages,
        response_format=response_format,
    )
    return replace(
        current,
        base_url=base_url.rstrip('/'),
        api_key=api_key,
        custom_message=custom_message,
        timeout=timeout,
        params=params,
    )


def setup_config() -> Config:
    """Run the wizard and save the result. Nothing is written if it is interrupted."""
    current = Config()
    if config_exists():
        try:
            current = load_config()
        except ConfigError as e:
            print_warning(f"{e}. Starting from defaults.")

    try:
        config = prompt_for_config(current)
    except EOFError:
        raise ConfigError("Setup needs an interactive terminal. Nothing was saved.") from None
    path = save_config(config)
    print_success(f"Saved to {path}")
    return config


def run_setup() -> int:
    """Quick setup wizard."""
    setup_config()
    return 0


def run_install_completion() -> int:
    """Install shell tab completion."""
    shell = os.environ.get('SHELL', '')
    line = 'eval "$(register-python-argcomplete acm)"'

    print(f"\n{bold('Tab Completion Setup')}\n")

    if 'zsh' in shell or 'bash' in shell:
        rc_file = os.path.expanduser('~/.zshrc' if 'zsh' in shell else '~/.bashrc')
        print(f"Add this line to {dim(rc_file)}:\n")
        print(f"  {line}\n")
        print(f"Then run: {dim(f'source {rc_file}')}")
    elif sys.platform == 'win32':
        print("For PowerShell, run:\n")
        print("  register-python-argcomplete --shell powershell acm | Out-String | Invoke-Expression\n")
        print("To make it permanent, add it to your $PROFILE.")
    else:
        print("Run one of these based on your shell:\n")
        print(f"  {dim('# Bash/Zsh')}")
        print(f"  {line}\n")
        print(f"  {dim('# Fish')}")
        print("  register-python-argcomplete --shell fish acm | source")

    print(f"\n{dim('After setup, press TAB to autocomplete flags.')}")
    return 0

