# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

ELLIPSIS = '...'
DEFAULT_LINE_LIMIT = 80


def summarise(
    comment: str | None,
    line_limit: int = DEFAULT_LINE_LIMIT,
) -> str:
    '''
    reduces a (commit-) comment to a single line of at most `line_limit` characters.

    Consumption of the comment stops at the first line-feed (which is not part of the result), or
    after `line_limit` characters. If the limit was hit while input remained, the last three
    characters are replaced by an ellipsis (`...`). For limits smaller than the ellipsis, the
    comment is cut off without ellipsis.
    '''
    if line_limit < 1:
        raise ValueError(f'line_limit must be positive: {line_limit=}')

    if not comment:
        return ''

    consumed = comment[:line_limit]
    first_line, linefeed, _ = consumed.partition('\n')

    if linefeed or len(comment) <= line_limit:
        return first_line

    if line_limit < len(ELLIPSIS):
        return consumed

    return consumed[:-len(ELLIPSIS)] + ELLIPSIS
