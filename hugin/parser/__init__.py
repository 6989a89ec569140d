"""hugin.parser: разбор robots.txt, sitemap.xml, директив и HTML."""
