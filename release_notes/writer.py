# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import logging
import os
import typing

import gitutil
import release_notes.config as rnc
import release_notes.model as rnm
import release_notes.scm
import release_notes.summary

logger = logging.getLogger(__name__)

NOTHING_TO_SAY = '  Nothing to say..'


def header_line(current_identifier: str) -> str:
    return f'Release note for {current_identifier}: \n'


def _prepare_output_path(output_path: str):
    if os.path.lexists(output_path):
        logger.debug(f'removing existing {output_path=}')
        try:
            os.unlink(output_path)
        except OSError as oe:
            raise rnm.OutputError(f'could not remove existing output file {output_path}') from oe

    if (parent_dir := os.path.dirname(output_path)):
        try:
            os.makedirs(parent_dir, exist_ok=True)
        except OSError as oe:
            raise rnm.OutputError(f'could not create directory {parent_dir}') from oe


def write_entries(
    out: typing.TextIO,
    change_log: rnm.ChangeLog | None,
    line_limit: int,
):
    if not change_log:
        # no trailing linebreak (kept for compatibility w/ existing consumers)
        out.write(NOTHING_TO_SAY)
        return

    for change_set in change_log:
        out.write(f'  {release_notes.summary.summarise(change_set.comment, line_limit)}\n')


def write_release_note(
    note_cfg: rnc.NoteConfig,
    scm_adapter: release_notes.scm.ScmAdapter | None=None,
    file_scope: str | None=None,
):
    '''
    writes the release-note for the change-log between `previous` and `current` revisions to
    the configured output path (replacing an existing file).

    file_scope: restricts the change-log to paths below it (defaults to working directory)

    :raises ConfigurationError: if a revision-kind is invalid (raised before any I/O is done)
    :raises OutputError: if the output file could not be prepared, written or closed
    :raises ScmError: if retrieving the change-log failed. The header is left in output file
    '''
    current = note_cfg.current.resolve()
    previous = note_cfg.previous.resolve()

    if scm_adapter is None:
        scm_adapter = release_notes.scm.GitScmAdapter()
    if file_scope is None:
        file_scope = os.getcwd()

    output_path = note_cfg.output_path
    _prepare_output_path(output_path)

    try:
        with open(output_path, 'x', encoding='utf-8', newline='\n') as out:
            out.write(header_line(note_cfg.current.identifier))

            try:
                with release_notes.scm.opened_repository(
                    scm_adapter=scm_adapter,
                    scm_url=note_cfg.scm_url,
                ) as handle:
                    change_log = scm_adapter.change_log(
                        handle=handle,
                        file_scope=file_scope,
                        start=previous,
                        end=current,
                    )
            except (rnm.ScmError, OSError) as se:
                # OSErrors raised by adapters are scm-errors (not output-errors)
                # messages may contain clone-urls w/ embedded credentials
                msg = gitutil.redact_credentials(str(se))
                logger.error(f'failed to retrieve change-log: {msg}')
                if se.__cause__:
                    logger.debug(f'caused by: {gitutil.redact_credentials(repr(se.__cause__))}')
                raise rnm.ScmError(f'Problem with SCM: {msg}') from se

            write_entries(
                out=out,
                change_log=change_log,
                line_limit=note_cfg.line_limit,
            )
    except OSError as oe:
        raise rnm.OutputError(f'error with output file {output_path}') from oe

    logger.info(f'wrote release-note to {output_path}')
