from lsystem_trees.main import main

raise SystemExit(main())
