#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging
import os
import sys
import urllib.parse

import ci.log
import ci.util
import gitutil
import release_notes.config as rnc
import release_notes.model as rnm
import release_notes.scm
import release_notes.writer

logger = logging.getLogger(__name__)

EXIT_CONFIGURATION_ERROR = 2
EXIT_OUTPUT_ERROR = 3
EXIT_SCM_ERROR = 4


def parse_args(argv=None) -> argparse.Namespace:
    ''' Parses CLI for release note generation '''
    parser = argparse.ArgumentParser(
        description='Generate a release note from the commits between two revisions',
    )
    parser.add_argument(
        '--cfg-file',
        default=None,
        help='YAML file to read configuration from (keys as the long options, e.g. logLineLimit)',
    )
    parser.add_argument(
        '--output-filename',
        default=None,
        help=f'file to write release note to (default: <build-dir>/{rnc.DEFAULT_OUTPUT_FILENAME})',
    )
    parser.add_argument(
        '--build-dir',
        default=None,
        help=f'directory for default output file (default: {rnc.DEFAULT_BUILD_DIR})',
    )
    parser.add_argument(
        '--scm-connection-url',
        default=None,
        help='e.g. scm:git:https://github.com/org/repo.git or scm:git:file:///path/to/repo',
    )
    parser.add_argument('--previous-version', default=None)
    parser.add_argument(
        '--previous-version-type',
        default=None,
        help='one of: tag, branch, revision',
    )
    parser.add_argument('--current-version', default=None)
    parser.add_argument(
        '--current-version-type',
        default=None,
        help='one of: tag, branch, revision',
    )
    parser.add_argument(
        '--log-line-limit',
        type=int,
        default=None,
        help='max characters per summary line (default: 80)',
    )
    parser.add_argument(
        '--newest-first',
        action='store_true',
        default=False,
        help='list commits newest-first (default: oldest-first)',
    )
    parser.add_argument(
        '--scm-auth-token',
        default=None,
        help='token to use for cloning via https (defaults to $GITHUB_TOKEN for github-urls)',
    )
    parser.add_argument(
        '--scm-username',
        default='x-access-token',
        help='username to pass along with --scm-auth-token',
    )
    parser.add_argument(
        '--scm-ssh-key-file',
        default=None,
        help='private key to use for cloning via ssh',
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('--verbose', action='store_true')
    verbosity.add_argument('--quiet', action='store_true')

    return parser.parse_args(argv)


def _is_github_location(scm_url: str | None) -> bool:
    try:
        location = release_notes.scm.parse_scm_url(scm_url).location
    except rnm.ScmError:
        return False

    if urllib.parse.urlparse(location).scheme != 'https':
        return False

    github_hosts = {'github.com'}
    if (server_url := os.environ.get('GITHUB_SERVER_URL')):
        github_hosts.add(urllib.parse.urlparse(server_url).hostname)

    return urllib.parse.urlparse(location).hostname in github_hosts


def _git_cfg(
    parsed: argparse.Namespace,
    scm_url: str | None=None,
) -> gitutil.GitCfg:
    if parsed.scm_ssh_key_file:
        with open(parsed.scm_ssh_key_file) as f:
            return gitutil.GitCfg(
                auth=f.read(),
                auth_type=gitutil.AuthType.SSH,
            )

    if not (token := parsed.scm_auth_token):
        # $GITHUB_TOKEN is only passed to GitHub
        if _is_github_location(scm_url):
            token = os.environ.get('GITHUB_TOKEN')

    if token:
        return gitutil.GitCfg(
            auth=(parsed.scm_username, token),
            auth_type=gitutil.AuthType.HTTP_TOKEN,
        )

    return gitutil.GitCfg()


def _overrides(parsed: argparse.Namespace) -> dict:
    return {
        'output_filename': parsed.output_filename,
        'build_dir': parsed.build_dir,
        'scm_connection_url': parsed.scm_connection_url,
        'previous_version': parsed.previous_version,
        'previous_version_type': parsed.previous_version_type,
        'current_version': parsed.current_version,
        'current_version_type': parsed.current_version_type,
        'log_line_limit': parsed.log_line_limit,
    }


def _fail(prefix: str, msg: str, exit_code: int):
    ci.util.print_coloured(f'✗ {prefix}: {msg}', colour='red', outfh=sys.stderr)
    sys.exit(exit_code)


def main(argv=None):
    parsed = parse_args(argv)

    if parsed.verbose:
        ci.log.configure_default_logging(stdout_level=logging.DEBUG)
    elif parsed.quiet:
        ci.log.configure_default_logging(stdout_level=logging.WARNING)
    else:
        ci.log.configure_default_logging()

    try:
        note_cfg = rnc.load_note_config(
            cfg_file=parsed.cfg_file,
            overrides=_overrides(parsed),
        )
        scm_adapter = release_notes.scm.GitScmAdapter(
            git_cfg=_git_cfg(parsed, scm_url=note_cfg.scm_url),
            reverse=not parsed.newest_first,
        )
    except rnm.ConfigurationError as ce:
        _fail('configuration error', str(ce), EXIT_CONFIGURATION_ERROR)
    except OSError as oe:
        _fail('configuration error', str(oe), EXIT_CONFIGURATION_ERROR)

    try:
        release_notes.writer.write_release_note(
            note_cfg=note_cfg,
            scm_adapter=scm_adapter,
        )
    except rnm.ConfigurationError as ce:
        _fail('configuration error', str(ce), EXIT_CONFIGURATION_ERROR)
    except rnm.OutputError as oe:
        _fail('output error', f'{oe} ({oe.__cause__})', EXIT_OUTPUT_ERROR)
    except rnm.ScmError as se:
        _fail('scm error', str(se), EXIT_SCM_ERROR)

    ci.util.print_coloured(f'✓ release note written to {note_cfg.output_path}', colour='green')


if __name__ == '__main__':
    main()
