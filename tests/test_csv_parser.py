import unittest

from uta_report.csv_parser import (
    DEPOSIT_WITHDRAWAL_WARNING, EMPTY_WARNING, QUANTITY_SIGN_WARNING,
    detect_breakdown_strategy, find_header_row_index, normalize_key,
    normalize_text, parse_csv, parse_csv_to_matrix, pick_column_index,
    resolve_columns
)
from uta_report.utils import parse_number, to_upper


class TestTextAndTokenising(unittest.TestCase):

    def test_normalize_text_strips_bom_and_line_endings(self):
        self.assertEqual(normalize_text('\ufeffa,b\r\nc,d\re'), 'a,b\nc,d\ne')

    def test_normalize_text_none_is_empty(self):
        self.assertEqual(normalize_text(None), '')

    def test_quoted_field_with_escaped_quotes(self):
        matrix = parse_csv_to_matrix('"a,""b""""c"",d"')
        self.assertEqual(matrix, [['a,"b""c",d']])

    def test_newline_inside_quotes_is_literal(self):
        matrix = parse_csv_to_matrix('x,"line1\nline2"\ny,z')
        self.assertEqual(matrix, [['x', 'line1\nline2'], ['y', 'z']])

    def test_blank_rows_dropped_everywhere(self):
        text = '\n  ,  \na,b\n\n , \nc,d\n   '
        self.assertEqual(parse_csv_to_matrix(text), [['a', 'b'], ['c', 'd']])

    def test_last_row_flushed_without_trailing_newline(self):
        self.assertEqual(parse_csv_to_matrix('a,b\nc,d'), [['a', 'b'], ['c', 'd']])

    def test_trailing_empty_field_kept(self):
        self.assertEqual(parse_csv_to_matrix('a,b,\n'), [['a', 'b', '']])

    def test_empty_input(self):
        self.assertEqual(parse_csv_to_matrix(''), [])


class TestHeaderDetection(unittest.TestCase):

    def test_normalize_key(self):
        self.assertEqual(normalize_key('  Date & Time  (UTC) '), 'datetimeutc')
        self.assertEqual(normalize_key('Fee Paid'), 'feepaid')

    def test_header_after_junk_rows(self):
        matrix = [
            ['Bybit export'],
            ['Generated', '2025-01-31'],
            ['UID', 'Date', 'Coin', 'QTY'],
            ['1', '2025-01-01', 'BTC', '1'],
        ]
        self.assertEqual(find_header_row_index(matrix), 2)

    def test_fallback_to_first_row(self):
        matrix = [['a', 'b'], ['c', 'd']]
        self.assertEqual(find_header_row_index(matrix), 0)

    def test_header_beyond_scan_window_not_found(self):
        matrix = [['junk']] * 30 + [['Uid', 'Date', 'Coin', 'Qty']]
        self.assertEqual(find_header_row_index(matrix), 0)

    def test_three_of_four_signals_is_enough(self):
        matrix = [['x'], ['Uid', 'Currency', 'Quantity', 'Time(UTC)']]
        self.assertEqual(find_header_row_index(matrix), 1)


class TestColumnResolution(unittest.TestCase):

    def test_candidate_order_wins_over_header_order(self):
        headers = ['Symbol', 'Coin']
        # 'coin' precedes 'symbol' in the candidate list
        self.assertEqual(pick_column_index(headers, ['asset', 'coin', 'currency', 'symbol']), 1)

    def test_unresolved_role(self):
        self.assertIsNone(pick_column_index(['A', 'B'], ['qty']))

    def test_resolve_columns_covers_every_role(self):
        indices = resolve_columns(['Uid', 'Currency', 'Type', 'Quantity', 'Time(UTC)'])
        self.assertEqual(indices['symbol'], 1)
        self.assertEqual(indices['category'], 2)
        self.assertEqual(indices['qty'], 3)
        self.assertEqual(indices['amount'], 3)
        self.assertIsNone(indices['revenue'])
        self.assertIsNone(indices['time'])

    def test_strategy_explicit_metrics(self):
        indices = resolve_columns(['Date', 'Coin', 'Amount', 'Type', 'Fee'])
        self.assertEqual(detect_breakdown_strategy(indices), ('explicit', None))

    def test_strategy_deposit_withdrawal(self):
        indices = resolve_columns(['Date', 'Coin', 'Amount', 'Type'])
        self.assertEqual(
            detect_breakdown_strategy(indices),
            ('deposit_withdrawal', DEPOSIT_WITHDRAWAL_WARNING)
        )

    def test_strategy_quantity_sign(self):
        indices = resolve_columns(['Date', 'Coin', 'Qty'])
        self.assertEqual(
            detect_breakdown_strategy(indices),
            ('quantity_sign', QUANTITY_SIGN_WARNING)
        )

    def test_strategy_none(self):
        self.assertEqual(detect_breakdown_strategy(resolve_columns(['A'])), (None, None))


class TestParseCsv(unittest.TestCase):

    def setUp(self):
        self.text = (
            '\ufeffUser report\r\n'
            'Period,2025-01-01 ~ 2025-01-31\r\n'
            '\r\n'
            'UID,Date,Coin,QTY,Type\r\n'
            '1001,2025-01-02,BTC,0.5,Deposit\r\n'
            ' , ,\r\n'
            '1001,2025-01-03,USDT,"1,000", withdraw \r\n'
            '1001,2025-01-04,ETH\r\n'
        )

    def test_headers_rows_and_warnings(self):
        result = parse_csv(self.text)

        self.assertEqual(result.headers, ['UID', 'Date', 'Coin', 'QTY', 'Type'])
        self.assertEqual(result.header_row_index, 2)
        self.assertEqual(result.warnings[0], 'Skipped 2 metadata row(s) before header.')
        self.assertIn(DEPOSIT_WITHDRAWAL_WARNING, result.warnings)
        self.assertEqual(result.strategy, 'deposit_withdrawal')

        self.assertEqual([r.row_id for r in result.rows], ['1', '2', '3'])
        self.assertEqual(result.rows[1].raw['QTY'], '1,000')
        self.assertEqual(result.rows[1].category, 'withdraw')

    def test_short_row_is_padded(self):
        last = parse_csv(self.text).rows[2]
        self.assertEqual(last.raw, {'UID': '1001', 'Date': '2025-01-04', 'Coin': 'ETH', 'QTY': '', 'Type': ''})
        self.assertIsNone(last.category)

    def test_resolved_columns_by_header_text(self):
        columns = parse_csv(self.text).columns
        self.assertEqual(columns['symbol'], 'Coin')
        self.assertEqual(columns['time'], 'Date')
        self.assertIsNone(columns['account'])

    def test_idempotent(self):
        self.assertEqual(parse_csv(self.text), parse_csv(self.text))

    def test_empty_file(self):
        result = parse_csv('\ufeff\r\n  \r\n')
        self.assertEqual(result.headers, [])
        self.assertEqual(result.rows, [])
        self.assertEqual(result.warnings, [EMPTY_WARNING])

    def test_header_whitespace_cleaned(self):
        result = parse_csv('Uid, Filled   Price ,Currency,Quantity\n1,2,BTC,3')
        self.assertEqual(result.headers[1], 'Filled Price')
        self.assertEqual(result.rows[0].raw['Filled Price'], '2')


class TestNumberParsing(unittest.TestCase):

    def test_examples(self):
        self.assertEqual(parse_number('1,234.50'), 1234.5)
        self.assertEqual(parse_number('(12.30)'), -12.3)
        self.assertEqual(parse_number('$-5'), -5)
        self.assertEqual(parse_number(''), 0)
        self.assertEqual(parse_number('--'), 0)

    def test_degrades_to_zero(self):
        self.assertEqual(parse_number(None), 0)
        self.assertEqual(parse_number('+'), 0)
        self.assertEqual(parse_number('abc'), 0)
        self.assertEqual(parse_number('1.2.3'), 0)

    def test_symbols_and_spaces(self):
        self.assertEqual(parse_number(' 1 000 USDT '), 1000)
        self.assertEqual(parse_number('+0.25'), 0.25)
        self.assertEqual(parse_number('(  $1,000 )'), -1000)

    def test_only_ascii_digits_count(self):
        self.assertEqual(parse_number('١٢'), 0)
        self.assertEqual(parse_number('١٢2'), 2)

    def test_parentheses_spanning_lines_not_negated(self):
        # Quoted cells may carry a newline; '(1\n2)' is not an accounting negative
        self.assertEqual(parse_number('(1\n2)'), 12)

    def test_to_upper(self):
        self.assertEqual(to_upper('  buy '), 'BUY')
        self.assertEqual(to_upper(None), '')


if __name__ == '__main__':
    unittest.main()
