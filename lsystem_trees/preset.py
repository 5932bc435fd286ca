LSYSTEM_PRESETS = {
    # Presets of the interactive editor
    "Default": {
        "axiom": "fffffA",
        "rules": {"A": "^fB+^^B+vvB<<<<B", "B": "[^^ff--A]"},
        "angle": 10,
        "iterations": 6,
        "description": "Tall trunk with a spiralling crown"
    },
    "Preset 1": {
        "axiom": "fA",
        "rules": {"A": "f[^Bl]>>[^Bl]>>A", "B": "f[-Bl]B"},
        "angle": 10,
        "iterations": 6,
        "description": "Leafy side shoots around a straight leader"
    },
    "Preset 2": {
        "axiom": "B",
        "rules": {"A": "f[^B][-B]B", "B": "f[+B]F"},
        "angle": 10,
        "iterations": 6,
        "description": "One-sided shoots, F is carried along as a passive symbol"
    },
    "Preset 3": {
        "axiom": "AB",
        "rules": {"A": "f[+B]A", "B": "f[-A]B"},
        "angle": 10,
        "iterations": 6,
        "description": "Two interleaved stems branching to opposite sides"
    },

    # Classic branching patterns over the same alphabet
    "dichotomous": {
        "axiom": "fA",
        "rules": {"A": "f[+A][-A]"},
        "angle": 25,
        "iterations": 5,
        "description": "Simple dichotomous forking"
    },
    "dichotomous_3d": {
        "axiom": "fA",
        "rules": {"A": "f[+A]>>>>[-A]"},
        "angle": 25,
        "iterations": 5,
        "description": "Forking with a roll between forks"
    },
    "bushy": {
        "axiom": "A",
        "rules": {"A": "f[+Al]<<[+Al]<<[+Al]", "f": "ff"},
        "angle": 22,
        "iterations": 4,
        "description": "Bush with three shoots per whorl and leaves on the tips"
    },
    "monopodial": {
        "axiom": "A",
        "rules": {"A": "f[+B]>>>[+B]>>>fA", "B": "f[-Cl][+Cl]", "C": "f"},
        "angle": 30,
        "iterations": 6,
        "description": "Straight leader with alternating lateral shoots"
    },
    "herringbone": {
        "axiom": "A",
        "rules": {"A": "f[-fl]f[+fl]A"},
        "angle": 35,
        "iterations": 6,
        "description": "Herringbone branching pattern"
    },
}
