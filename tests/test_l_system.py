import unittest

from lsystem_trees.errors import MalformedParameter
from lsystem_trees.l_system import LSystemGenerator


class TestLSystemGenerator(unittest.TestCase):

    def setUp(self):
        self.axiom = "fA"
        self.rules = {"A": "f[+A][-A]"}
        self.l_system = LSystemGenerator(self.rules)

    def test_initialization(self):
        self.assertEqual(self.l_system.rules, self.rules)
        self.assertEqual(len(self.l_system), 1)

    def test_two_iterations(self):
        self.assertEqual(
            self.l_system.generate(self.axiom, 2),
            "ff[+f[+A][-A]][-f[+A][-A]]"
        )

    def test_zero_iterations_returns_axiom(self):
        for axiom in ["", "fA", "[+l]", "xyz"]:
            self.assertEqual(self.l_system.generate(axiom, 0), axiom)

    def test_empty_grammar_is_identity(self):
        grammar = LSystemGenerator()
        for n in range(4):
            self.assertEqual(grammar.generate("fA[+B]l", n), "fA[+B]l")

    def test_composition(self):
        self.l_system.add_rule("f", "ff")
        for m in range(3):
            for n in range(3):
                self.assertEqual(
                    self.l_system.generate(self.axiom, m + n),
                    self.l_system.generate(self.l_system.generate(self.axiom, m), n)
                )

    def test_deterministic(self):
        first = self.l_system.generate(self.axiom, 4)
        second = self.l_system.generate(self.axiom, 4)
        self.assertEqual(first, second)

    def test_unknown_symbols_pass_through(self):
        self.assertEqual(self.l_system.generate("XAY", 1), "Xf[+A][-A]Y")

    def test_empty_replacement_acts_as_identity(self):
        self.l_system.add_rule("C", "")
        self.assertEqual(self.l_system.generate("C", 3), "C")

    def test_add_rule_overwrites(self):
        self.l_system.add_rule("A", "l")
        self.assertEqual(self.l_system.generate("fA", 1), "fl")

    def test_clear_rules(self):
        self.l_system.clear_rules()
        self.assertEqual(self.l_system.generate(self.axiom, 5), self.axiom)

    def test_copy_is_independent(self):
        snapshot = self.l_system.copy()
        self.l_system.add_rule("A", "l")
        self.assertEqual(snapshot.generate("A", 1), "f[+A][-A]")

    def test_invalid_rule_symbol(self):
        with self.assertRaises(MalformedParameter):
            self.l_system.add_rule("AB", "f")
        with self.assertRaises(MalformedParameter):
            self.l_system.add_rule("", "f")

    def test_negative_iterations(self):
        with self.assertRaises(MalformedParameter):
            self.l_system.generate(self.axiom, -1)

    def test_iterate_yields_every_generation(self):
        generations = list(self.l_system.iterate(self.axiom, 2))
        self.assertEqual(len(generations), 3)
        self.assertEqual(generations[0], self.axiom)
        self.assertEqual(generations[1], "ff[+A][-A]")
        self.assertEqual(generations[2], self.l_system.generate(self.axiom, 2))


if __name__ == "__main__":
    unittest.main()
