# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0


import dataclasses
import enum
import logging
import os
import re
import tempfile
import urllib.parse

import git

logger = logging.getLogger(__name__)

HTTP_SCHEMES = ('http', 'https')
_URL_CREDENTIALS = re.compile(r'([a-zA-Z][a-zA-Z0-9+.-]*://)[^/\s@]+@')


class AuthType(enum.StrEnum):
    '''
    SSH: credentials for use via SSH (typically a RSA-key w/ no explicit username)
    HTTP_TOKEN: (username, token)-pair, embedded into the (https-) url used for cloning
    PRESET: assume effective git-config (or an ssh-agent) already provides access
    '''
    SSH = 'ssh'
    HTTP_TOKEN = 'http-token'
    PRESET = 'preset'


@dataclasses.dataclass(kw_only=True)
class GitCfg:
    '''
    Configuration for accessing a git-repository. If no auth is set, it is assumed the effective
    git-config already grants access.

    Note: for HTTP_TOKEN, credentials are embedded into the clone-url, and thus end up in the
    `remote.origin.url` of the cloned repository's .git/config. Callers must treat clones as
    containing secrets (e.g. remove them after use).

    It is left to the user to ensure repo_url matches the auth_type (e.g. if auth_type is SSH,
    repo_url *must* have ssh-scheme, if auth_type is HTTP_TOKEN, it must have http(s)-scheme)

    repo_url: remote to clone from. Note: auth_type needs to match url-schema
    auth: private key (SSH) or (username, token)-tuple (HTTP_TOKEN)
    auth_type: type of auth
    '''
    repo_url: str | None = None
    auth: str | tuple[str, str] | None = None
    auth_type: AuthType = AuthType.PRESET


def _ssh_auth_env(git_cfg: GitCfg):
    credentials = git_cfg.auth
    logger.info(f'using ssh-credentials for {git_cfg.repo_url=}')

    tmp_id = tempfile.NamedTemporaryFile(mode='w', delete=False) # noqa; callers must unlink
    tmp_id.write(credentials)
    tmp_id.flush()
    tmp_id.close()

    os.chmod(tmp_id.name, 0o400)
    suppress_hostcheck = '-o "StrictHostKeyChecking no"'
    id_only = '-o "IdentitiesOnly yes"'
    cmd_env = os.environ.copy()
    cmd_env['GIT_SSH_COMMAND'] = f'ssh -i {tmp_id.name} {suppress_hostcheck} {id_only}'
    return (cmd_env, tmp_id)


class GitHelper:
    def __init__(
        self,
        repo,
        git_cfg: GitCfg | None=None,
    ):
        if repo is None:
            raise ValueError(repo)
        if isinstance(repo, str):
            repo = git.Repo(repo, search_parent_directories=True)
        if not isinstance(repo, git.Repo):
            raise ValueError(repo)

        self.repo = repo
        self.git_cfg = git_cfg or GitCfg()

    @staticmethod
    def clone_into(
        target_directory: str,
        git_cfg: GitCfg,
    ) -> 'GitHelper':
        if not git_cfg.repo_url:
            raise ValueError('repo-url must not be None')

        auth_type = git_cfg.auth_type
        if auth_type is AuthType.SSH:
            cmd_env, tmp_id = _ssh_auth_env(git_cfg=git_cfg)
            url = git_cfg.repo_url
        elif auth_type is AuthType.HTTP_TOKEN:
            url = _url_with_credentials(git_cfg)
        elif auth_type is AuthType.PRESET:
            url = git_cfg.repo_url
        else:
            raise NotImplementedError

        # only history (incl. tags) is read, so there is no need to populate a work tree
        args = ['--quiet', '--no-checkout', url, target_directory]

        logger.info(f'cloning {git_cfg.repo_url} into {target_directory}')
        repo = git.Git()
        try:
            if auth_type is AuthType.SSH:
                with repo.custom_environment(**cmd_env):
                    repo.clone(*args)
            else:
                repo.clone(*args)
        finally:
            if auth_type is AuthType.SSH:
                os.unlink(tmp_id.name)

        return GitHelper(
            repo=git.Repo(target_directory),
            git_cfg=git_cfg,
        )

    @property
    def working_tree_dir(self) -> str | None:
        return self.repo.working_tree_dir

    def resolve_commit(self, *candidate_refs: str) -> git.Commit:
        '''
        returns the commit the first resolvable of the given refs points to. Annotated tags are
        dereferenced to the tagged commit.

        @raises ValueError if none of the given refs can be resolved
        '''
        for ref in candidate_refs:
            try:
                return self.repo.commit(ref)
            except (git.exc.ODBError, ValueError) as e:
                logger.debug(f'could not resolve {ref=}: {e}')

        raise ValueError(f'none of {candidate_refs} could be resolved to a commit')

    def iter_commits_in_range(
        self,
        start: git.Commit,
        end: git.Commit,
        paths: str | None=None,
        reverse: bool=True,
    ):
        '''
        yields commits reachable from `end`, but not from `start` (`git rev-list start..end`).
        If `paths` is set, only commits touching files below it are yielded.
        '''
        kwargs = {'reverse': True} if reverse else {}
        if paths:
            kwargs['paths'] = paths

        yield from self.repo.iter_commits(
            f'{start.hexsha}..{end.hexsha}',
            **kwargs,
        )

    def path_in_working_tree(self, path: str) -> str | None:
        '''
        returns the given path relative to the working tree root, or None if it does not reside
        within the working tree.
        '''
        if not (work_tree := self.working_tree_dir):
            return None

        work_tree = os.path.realpath(work_tree)
        path = os.path.realpath(path)

        if os.path.commonpath((work_tree, path)) != work_tree:
            return None

        return os.path.relpath(path, work_tree)


def _url_with_credentials(
    git_cfg: GitCfg,
):
    if git_cfg.auth_type is AuthType.PRESET:
        return git_cfg.repo_url
    elif git_cfg.auth_type is AuthType.SSH:
        raise ValueError('auth-url cannot be created for auth-type SSH')
    elif git_cfg.auth_type is AuthType.HTTP_TOKEN:
        pass # ok to proceed
    else:
        raise ValueError(f'not implemented: {git_cfg.auth_type=}')

    if not is_http_url(git_cfg.repo_url):
        raise ValueError(f'credentials can only be embedded into http(s)-urls: {git_cfg.repo_url}')

    base_url = urllib.parse.urlparse(git_cfg.repo_url)

    user, secret = git_cfg.auth
    credentials_str = f'{user}:{secret}'

    url = f'{base_url.scheme}://{credentials_str}@{base_url.hostname}'
    if base_url.port:
        url += f':{base_url.port}'
    url += base_url.path
    return url


def is_http_url(url: str | None) -> bool:
    if not url:
        return False
    return urllib.parse.urlparse(url).scheme in HTTP_SCHEMES


def redact_credentials(text: str) -> str:
    '''
    replaces credentials embedded into urls (`<scheme>://<user>:<secret>@<host>`) in the given
    text, e.g. command-lines contained in error messages
    '''
    return _URL_CREDENTIALS.sub(r'\1***@', text)
