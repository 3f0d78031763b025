# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import dataclasses
import logging
import os
import re

import dacite

import ci.util
import release_notes.model as rnm
import release_notes.revision
import release_notes.summary

logger = logging.getLogger(__name__)

DEFAULT_BUILD_DIR = 'build'
DEFAULT_OUTPUT_FILENAME = 'release-note.txt'
ENV_PREFIX = 'RELEASE_NOTE_'

# snake_case key -> name used in user-facing messages (and accepted in cfg-files)
_PUBLIC_NAMES = {
    'output_filename': 'outputFilename',
    'scm_connection_url': 'scmConnectionUrl',
    'previous_version': 'previousVersion',
    'previous_version_type': 'previousVersionType',
    'current_version': 'currentVersion',
    'current_version_type': 'currentVersionType',
    'log_line_limit': 'logLineLimit',
    'build_dir': 'buildDir',
}


@dataclasses.dataclass(frozen=True)
class RevisionSpec:
    '''
    a (kind, identifier)-pair as passed by users, e.g. ('tag', 'v1.2.0')
    '''
    kind: str
    identifier: str

    def resolve(self) -> rnm.Revision:
        return release_notes.revision.resolve(self.kind, self.identifier)


@dataclasses.dataclass(frozen=True, kw_only=True)
class NoteConfig:
    output_path: str
    scm_url: str
    previous: RevisionSpec
    current: RevisionSpec
    line_limit: int = release_notes.summary.DEFAULT_LINE_LIMIT

    def __post_init__(self):
        _require('outputFilename', self.output_path)
        _require('scmConnectionUrl', self.scm_url)

        for prefix, revision_spec in (
            ('previousVersion', self.previous),
            ('currentVersion', self.current),
        ):
            if revision_spec is None:
                raise rnm.ConfigurationError(f'{prefix} is required')
            _require(prefix, revision_spec.identifier)
            _require(f'{prefix}Type', revision_spec.kind)
            try:
                revision_spec.resolve()
            except rnm.InvalidRevisionKind as irk:
                raise rnm.InvalidRevisionKind(
                    kind=irk.kind,
                    field_name=f'{prefix}Type',
                ) from None

        if (
            isinstance(self.line_limit, bool)
            or not isinstance(self.line_limit, int)
            or self.line_limit < 1
        ):
            raise rnm.ConfigurationError(
                f'logLineLimit must be a positive integer: {self.line_limit!r}'
            )


def _require(name: str, value):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise rnm.ConfigurationError(f'{name} is required')


@dataclasses.dataclass
class RawNoteConfig:
    '''
    configuration as read from (partial) sources; values that are absent are None
    '''
    output_filename: str | None = None
    scm_connection_url: str | None = None
    previous_version: str | None = None
    previous_version_type: str | None = None
    current_version: str | None = None
    current_version_type: str | None = None
    log_line_limit: int | None = None
    build_dir: str | None = None


def _snake_case(key: str) -> str:
    key = key.replace('-', '_')
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def _normalise_keys(raw: dict) -> dict:
    normalised = {}
    for key, value in raw.items():
        snake_key = _snake_case(str(key))
        if snake_key not in _PUBLIC_NAMES:
            raise rnm.ConfigurationError(
                f'unknown configuration key {key!r}, expected one of: '
                f'{", ".join(_PUBLIC_NAMES.values())}'
            )
        normalised[snake_key] = value
    return normalised


def _raw_cfg(raw: dict) -> RawNoteConfig:
    raw = {k: v for k, v in _normalise_keys(raw).items() if v is not None}

    for key in ('previous_version', 'current_version'):
        # YAML parses unquoted versions such as `1.0` or `2` as numbers
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            logger.warning(
                f'{_PUBLIC_NAMES[key]} was given as number ({value!r}), using {str(value)!r}; '
                'quote versions in configuration files to retain them as written'
            )
            raw[key] = str(value)

    if (line_limit := raw.get('log_line_limit')) is not None and isinstance(line_limit, str):
        try:
            raw['log_line_limit'] = int(line_limit)
        except ValueError:
            raise rnm.ConfigurationError(
                f'logLineLimit must be a positive integer: {line_limit!r}'
            ) from None

    try:
        return dacite.from_dict(
            data_class=RawNoteConfig,
            data=raw,
            config=dacite.Config(strict=True),
        )
    except dacite.DaciteError as de:
        raise rnm.ConfigurationError(f'invalid configuration: {de}') from de


def raw_cfg_from_file(path: str) -> RawNoteConfig:
    try:
        raw = ci.util.parse_yaml_file(path)
    except OSError as oe:
        raise rnm.ConfigurationError(f'could not read configuration file {path}: {oe}') from oe

    if raw is None:
        return RawNoteConfig()
    if not isinstance(raw, dict):
        raise rnm.ConfigurationError(f'expected a mapping in configuration file {path}')

    logger.debug(f'read configuration from {path}')
    return _raw_cfg(raw)


def raw_cfg_from_env(env: dict=None) -> RawNoteConfig:
    if env is None:
        env = os.environ

    return _raw_cfg({
        key: env[f'{ENV_PREFIX}{key.upper()}']
        for key in _PUBLIC_NAMES
        if f'{ENV_PREFIX}{key.upper()}' in env
    })


def raw_cfg_from_dict(raw: dict) -> RawNoteConfig:
    return _raw_cfg(raw)


def merge_raw_cfgs(*raw_cfgs: RawNoteConfig) -> RawNoteConfig:
    '''
    merges the given configurations; values from later configurations take precedence. Absent
    (None) values never overwrite present ones.
    '''
    merged = ci.util.merge_dicts(
        {},
        *(
            {k: v for k, v in dataclasses.asdict(raw_cfg).items() if v is not None}
            for raw_cfg in raw_cfgs
            if raw_cfg
        ),
    )

    return dacite.from_dict(
        data_class=RawNoteConfig,
        data=merged,
    )


def note_config(raw_cfg: RawNoteConfig) -> NoteConfig:
    '''
    creates a validated `NoteConfig`. Defaults are applied for absent optional values.

    :raises ConfigurationError: if a required value is missing or invalid
    '''
    if not (output_path := raw_cfg.output_filename):
        output_path = os.path.join(
            raw_cfg.build_dir or DEFAULT_BUILD_DIR,
            DEFAULT_OUTPUT_FILENAME,
        )

    if raw_cfg.log_line_limit is None:
        line_limit = release_notes.summary.DEFAULT_LINE_LIMIT
    else:
        line_limit = raw_cfg.log_line_limit

    return NoteConfig(
        output_path=output_path,
        scm_url=raw_cfg.scm_connection_url,
        previous=RevisionSpec(
            kind=raw_cfg.previous_version_type,
            identifier=raw_cfg.previous_version,
        ),
        current=RevisionSpec(
            kind=raw_cfg.current_version_type,
            identifier=raw_cfg.current_version,
        ),
        line_limit=line_limit,
    )


def load_note_config(
    cfg_file: str | None=None,
    env: dict | None=None,
    overrides: dict | None=None,
) -> NoteConfig:
    '''
    loads configuration from (in order of increasing precedence): cfg-file, environment
    (`RELEASE_NOTE_<KEY>`, e.g. `RELEASE_NOTE_CURRENT_VERSION`), overrides (typically from argv)
    '''
    raw_cfgs = []
    if cfg_file:
        raw_cfgs.append(raw_cfg_from_file(cfg_file))
    raw_cfgs.append(raw_cfg_from_env(env=env))
    if overrides:
        raw_cfgs.append(raw_cfg_from_dict(overrides))

    return note_config(merge_raw_cfgs(*raw_cfgs))
