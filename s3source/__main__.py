from s3source.modules.cli import main

raise SystemExit(main())
