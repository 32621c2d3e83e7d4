from powerposition.cli import main

raise SystemExit(main())
