from audiotools.cli import main

raise SystemExit(main())
