import json

from Engine.main import main
from Engine.output import PuzzleFormatter
from Engine.puzzle import Puzzle, empty_grid


def test_format_puzzle_json(sample_4x4):
    data = PuzzleFormatter.format_puzzle_json(sample_4x4, {'attempts': 1})
    info = data['puzzle_info']
    assert info['total_cells'] == 16
    assert info['total_cages'] == 8
    assert info['singleton_cages'] == 0
    assert info['largest_cage'] == 2
    assert info['operations'] == {'add': 6, 'divide': 1, 'multiply': 1}
    assert data['generation_stats'] == {'attempts': 1}
    assert data['cages'][2] == {'id': 'cage-2', 'cells': [[0, 3], [1, 3]],
                                'operation': '÷', 'target': 2}


def test_saved_puzzle_loads_back(sample_5x5, tmp_path):
    path = tmp_path / "puzzle.json"
    PuzzleFormatter.save_puzzle(sample_5x5, str(path), verbose=False)
    assert Puzzle.from_json(str(path)) == sample_5x5


def test_from_dict_accepts_camel_case_and_ascii_ops(sample_4x4):
    data = sample_4x4.to_dict()
    data.pop('fog_mode')
    data['fogMode'] = True
    data['cages'][4]['operation'] = '*'
    data['cages'][2]['operation'] = '/'
    puzzle = Puzzle.from_dict(data)
    assert puzzle.fog_mode is True
    assert puzzle.cages == sample_4x4.cages


def test_human_readable(sample_4x4):
    text = PuzzleFormatter.format_puzzle_human_readable(sample_4x4)
    assert "sample-4x4-easy" in text
    assert "12×" in text
    assert "2÷" in text


def test_grid_visualization_shows_cage_walls(sample_4x4):
    lines = PuzzleFormatter.format_grid_visualization(sample_4x4).splitlines()
    assert lines[1] == "GRID VISUALIZATION:"
    assert len(lines) == 2 + 1 + 2 * 4
    # cage-0 joins (0,0) and (0,1) horizontally
    assert lines[3].startswith("| 1   2 |")
    # cage-1 joins (0,2) and (1,2) vertically
    assert lines[4] == "+---+---+   +   +"


def test_grid_visualization_marks_conflicts(sample_4x4):
    grid = empty_grid(4)
    grid[0][0] = grid[0][2] = 3
    text = PuzzleFormatter.format_grid_visualization(sample_4x4, grid)
    assert text.count("3!") == 2
    assert "·" in text


def test_cli_writes_files(tmp_path):
    code = main(["--size", "4", "--difficulty", "2", "--seed", "3",
                 "--output-dir", str(tmp_path), "--quiet"])
    assert code == 0
    json_files = list(tmp_path.glob("*.json"))
    assert len(json_files) == 1
    assert json_files[0].with_suffix(".txt").exists()

    data = json.loads(json_files[0].read_text(encoding="utf-8"))
    assert data['size'] == 4
    assert data['generation_stats']['attempts'] == 1


def test_cli_batch_with_uniqueness(tmp_path, capsys):
    code = main(["--size", "4", "--difficulty", "7", "--seed", "11", "--count", "2",
                 "--unique", "--output-dir", str(tmp_path)])
    assert code == 0
    assert len(list(tmp_path.glob("*.json"))) == 2
    assert "SUMMARY" in capsys.readouterr().out


def test_cli_rejects_bad_size(tmp_path, capsys):
    assert main(["--size", "9", "--output-dir", str(tmp_path)]) == 1
    assert "Error:" in capsys.readouterr().out


def test_cli_sample(capsys):
    assert main(["--sample"]) == 0
    out = capsys.readouterr().out
    assert "sample-4x4-easy" in out
    assert "sample-5x5-medium" in out
