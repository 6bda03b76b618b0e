"""End-to-end tests for extract_maps.py, export_maps_xlsx.py and dump_tbl.py."""

import json

import openpyxl
import pytest

import dump_tbl
import export_maps_xlsx
from conftest import build_tbl
from extract_maps import (
    OutputError,
    extract_maps,
    load_maps_json,
    main,
    write_maps_json,
)
from map_data import MapLevel, Monster

EXPECTED = [{
    'displayName': 'Blood Moor',
    'tier': 1,
    'monsters': [{
        'displayName': 'Skeleton',
        'physRes': 0,
        'magicRes': 0,
        'fireRes': 50,
        'lightningRes': 0,
        'coldRes': 0,
        'poisonRes': 0,
        'minHpClosedBnet': 12,
        'maxHpClosedBnet': 24,
        'minHpOpenBnet': 10,
        'maxHpOpenBnet': 20,
    }],
}]


class TestExtractMaps:
    def test_blood_moor(self, data_dir, tmp_path):
        out = tmp_path / 'maps.json'
        assert main(['--data', str(data_dir), '--out', str(out)]) == 0
        assert json.loads(out.read_text(encoding='utf-8')) == EXPECTED

    def test_diagnostics(self, data_dir, tmp_path, capsys):
        main(['--data', str(data_dir), '--out', str(tmp_path / 'maps.json')])
        out = capsys.readouterr().out
        assert 'Found map lvl5 Blood Moor' in out
        assert 'Could not match display name monster' not in out

    def test_patch_and_expansion_override(self, data_dir):
        (data_dir / 'patchstring.tbl').write_bytes(build_tbl([('42', 'Patched Skeleton')]))
        assert extract_maps(data_dir)[0].monsters[0].display_name == 'Patched Skeleton'

        (data_dir / 'expansionstring.tbl').write_bytes(build_tbl([('42', 'Burning Dead')]))
        assert extract_maps(data_dir)[0].monsters[0].display_name == 'Burning Dead'

    def test_corrupt_tbl_is_fatal(self, data_dir, tmp_path, capsys):
        (data_dir / 'patchstring.tbl').write_bytes(b'\x00\x00\x05\x00')
        out = tmp_path / 'maps.json'
        assert main(['--data', str(data_dir), '--out', str(out)]) == 1
        assert not out.exists()
        assert 'ERROR:' in capsys.readouterr().err

    def test_missing_input_is_fatal(self, data_dir, tmp_path):
        (data_dir / 'MonLvl.txt').unlink()
        out = tmp_path / 'maps.json'
        assert main(['--data', str(data_dir), '--out', str(out)]) == 1
        assert not out.exists()

    def test_malformed_row_is_fatal(self, data_dir, tmp_path):
        with open(data_dir / 'Levels.txt', 'a', encoding='utf-8') as fh:
            fh.write('too\tfew\n')
        out = tmp_path / 'maps.json'
        assert main(['--data', str(data_dir), '--out', str(out)]) == 1
        assert not out.exists()

    def test_oversized_field_is_fatal(self, data_dir, tmp_path, capsys):
        (data_dir / 'MonStats.txt').write_text(
            'Id\tNameStr\n99\t' + 'x' * 200000 + '\n', encoding='utf-8')
        out = tmp_path / 'maps.json'
        assert main(['--data', str(data_dir), '--out', str(out)]) == 1
        assert not out.exists()
        assert 'ERROR: ' in capsys.readouterr().err

    def test_xlsx_option(self, data_dir, tmp_path):
        xlsx = tmp_path / 'maps.xlsx'
        assert main(['--data', str(data_dir), '--out', str(tmp_path / 'maps.json'),
                     '--xlsx', str(xlsx)]) == 0
        wb = openpyxl.load_workbook(xlsx)
        assert wb.sheetnames == ['Maps', 'Monsters']
        assert [c.value for c in wb['Maps'][2]] == ['Blood Moor', 1, 1]


class TestSerializer:
    def test_round_trip(self, tmp_path):
        maps = [
            MapLevel('Blood Moor', 1, [Monster('Skeleton', fire_res=50, min_hp_closed_bnet=12)]),
            MapLevel('Empty Tomb', 5),
        ]
        path = tmp_path / 'maps.json'
        write_maps_json(maps, path)
        assert load_maps_json(path) == maps

        raw = json.loads(path.read_text(encoding='utf-8'))
        assert raw[1]['monsters'] == []
        assert isinstance(raw[0]['tier'], int)

    def test_unicode_names(self, tmp_path):
        path = tmp_path / 'maps.json'
        write_maps_json([MapLevel('Ödland', 2)], path)
        assert 'Ödland' in path.read_text(encoding='utf-8')

    def test_encode_failure(self, tmp_path):
        path = tmp_path / 'maps.json'
        bad = MapLevel('Bad', 1, [Monster('x', fire_res=object())])
        with pytest.raises(OutputError):
            write_maps_json([bad], path)
        assert not path.exists()

    def test_write_failure(self, tmp_path):
        with pytest.raises(OutputError):
            write_maps_json([], tmp_path / 'missing_dir' / 'maps.json')


class TestExportXlsx:
    def test_monster_rows(self, tmp_path):
        maps = [MapLevel('Blood Moor', 1, [
            Monster('Skeleton', fire_res=50, min_hp_closed_bnet=12, max_hp_closed_bnet=24,
                    min_hp_open_bnet=10, max_hp_open_bnet=20),
        ])]
        maps_json = tmp_path / 'maps.json'
        write_maps_json(maps, maps_json)
        xlsx = tmp_path / 'maps.xlsx'

        assert export_maps_xlsx.main(['--maps', str(maps_json), '--out', str(xlsx)]) == 0
        ws = openpyxl.load_workbook(xlsx)['Monsters']
        assert ws['A1'].font.bold
        assert [c.value for c in ws[2]] == [
            'Blood Moor', 1, 'Skeleton', 0, 0, 50, 0, 0, 0, 12, 24, 10, 20,
        ]

    def test_wrong_shape_input(self, tmp_path):
        maps_json = tmp_path / 'maps.json'
        maps_json.write_text('["Blood Moor"]', encoding='utf-8')
        assert export_maps_xlsx.main(['--maps', str(maps_json),
                                      '--out', str(tmp_path / 'x.xlsx')]) == 1

    def test_missing_input(self, tmp_path):
        assert export_maps_xlsx.main(['--maps', str(tmp_path / 'none.json'),
                                      '--out', str(tmp_path / 'x.xlsx')]) == 1


class TestDumpTbl:
    def test_merged_dump(self, tmp_path):
        base = tmp_path / 'string.tbl'
        patch = tmp_path / 'patchstring.tbl'
        base.write_bytes(build_tbl([('42', 'Skeleton'), ('a', 'A')]))
        patch.write_bytes(build_tbl([('42', 'Returned')]))
        out = tmp_path / 'strings.json'

        assert dump_tbl.main([str(base), str(patch), '--out', str(out)]) == 0
        assert json.loads(out.read_text(encoding='utf-8')) == {'42': 'Returned', 'a': 'A'}

    def test_corrupt_tbl(self, tmp_path):
        bad = tmp_path / 'bad.tbl'
        bad.write_bytes(b'\x01')
        assert dump_tbl.main([str(bad), '--out', str(tmp_path / 'o.json')]) == 1
